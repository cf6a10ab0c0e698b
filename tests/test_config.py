import pytest

import runjar.config as config
from runjar.constants import (
    CONFIG_ENV_VAR,
    DOWNLOADER_ENV_VAR,
    FALLBACK_VERSIONS,
    JAVA_VERSION_ENV_VAR,
    VERBOSE_ENV_VAR,
)
from runjar.errors import CLIError


def test_missing_config_file_yields_defaults(tmp_path):
    loaded = config.load_config(tmp_path / "missing.toml")
    assert loaded == config.ConfigFile()


def test_load_config_reads_values(tmp_path, monkeypatch):
    path = tmp_path / "config.toml"
    path.write_text(
        'java_version = 17\ncache_dir = " ~/runtimes "\nfallback = false\n'
        "fallback_versions = [17, 11, 17, 0, \"x\"]\nverbose = true\n",
        encoding="utf-8",
    )
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    loaded = config.load_config()
    assert loaded.java_version == 17
    assert loaded.cache_dir == "~/runtimes"
    assert loaded.fallback is False
    assert loaded.fallback_versions == [17, 11]
    assert loaded.verbose is True


def test_load_config_accepts_camel_case_keys(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("javaVersion = 11\nfallbackVersions = [11, 8]\n", encoding="utf-8")
    loaded = config.load_config(path)
    assert loaded.java_version == 11
    assert loaded.fallback_versions == [11, 8]


def test_load_config_rejects_invalid_toml(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("java_version = [", encoding="utf-8")
    with pytest.raises(CLIError) as excinfo:
        config.load_config(path)
    assert "failed to parse config file" in str(excinfo.value)


def test_resolve_java_version_precedence(monkeypatch):
    file_config = config.ConfigFile(java_version=11)
    monkeypatch.setenv(JAVA_VERSION_ENV_VAR, "17")
    assert config.resolve_java_version(8, file_config) == (8, "cli")
    assert config.resolve_java_version(None, file_config) == (17, "env")
    monkeypatch.delenv(JAVA_VERSION_ENV_VAR)
    assert config.resolve_java_version(None, file_config) == (11, "config")
    assert config.resolve_java_version(None, config.ConfigFile()) == (21, "default")


@pytest.mark.parametrize("value", ["abc", "0", "-3", "1.5"])
def test_resolve_java_version_rejects_bad_env(monkeypatch, value):
    monkeypatch.setenv(JAVA_VERSION_ENV_VAR, value)
    with pytest.raises(CLIError) as excinfo:
        config.resolve_java_version(None, config.ConfigFile())
    assert JAVA_VERSION_ENV_VAR in str(excinfo.value)


def test_resolve_java_version_rejects_zero_flag():
    with pytest.raises(CLIError):
        config.resolve_java_version(0, config.ConfigFile())


def test_resolve_verbose(monkeypatch):
    assert config.resolve_verbose(True, config.ConfigFile()) is True
    assert config.resolve_verbose(False, config.ConfigFile()) is False
    assert config.resolve_verbose(False, config.ConfigFile(verbose=True)) is True
    monkeypatch.setenv(VERBOSE_ENV_VAR, "yes")
    assert config.resolve_verbose(False, config.ConfigFile()) is True


def test_resolve_fallback_versions():
    assert config.resolve_fallback_versions(config.ConfigFile()) == FALLBACK_VERSIONS
    assert config.resolve_fallback_versions(config.ConfigFile(fallback_versions=[17])) == (17,)


def test_resolve_downloader_prefers_environment(tmp_path, monkeypatch):
    path = tmp_path / "config.toml"
    path.write_text('downloader = "requests"\n', encoding="utf-8")
    loaded = config.load_config(path)
    assert loaded.downloader == "requests"
    assert config.resolve_downloader(loaded) == "requests"
    monkeypatch.setenv(DOWNLOADER_ENV_VAR, "httpx")
    assert config.resolve_downloader(loaded) == "httpx"
    assert config.resolve_downloader(config.ConfigFile()) == "httpx"
