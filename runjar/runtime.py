"""Turn a runtime archive into a usable ``{root}/bin/java`` layout."""

from __future__ import annotations

import os
import posixpath
import re
import shutil
import stat
import tarfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, List

from .console import log_debug
from .errors import (
    ExtractionError,
    LayoutError,
    MissingEntryPointError,
    RuntimeAcquisitionError,
)

if TYPE_CHECKING:  # pragma: no cover
    from .context import Workspace


RUNTIME_NAME_MARKERS = ("jre", "jdk")


@dataclass(frozen=True)
class RuntimeHandle:
    root: Path
    java: Path
    version: int
    source: str


def extract_archive(archive: Path, dest: Path) -> None:
    dest.mkdir(parents=True, exist_ok=True)

    def normalize_member_path(member: str) -> str:
        normalized = (member or "").replace("\\", "/")
        while normalized.startswith("./"):
            normalized = normalized[2:]
        if not normalized:
            return ""
        if normalized.startswith("/") or re.match(r"^[A-Za-z]:", normalized):
            raise ExtractionError(
                f"archive entry contains an absolute path: {member!r} ({archive.name})"
            )
        parts = [part for part in normalized.split("/") if part not in {"", "."}]
        if any(part == ".." for part in parts):
            raise ExtractionError(
                f"archive entry attempts path traversal: {member!r} ({archive.name})"
            )
        return "/".join(parts)

    def ensure_safe_parents(parts: List[str]) -> Path:
        current = dest
        for part in parts:
            current = current / part
            if current.exists():
                if current.is_symlink():
                    raise ExtractionError(
                        f"refusing to extract into symlinked directory {current} ({archive.name})"
                    )
                if not current.is_dir():
                    raise ExtractionError(
                        f"refusing to extract into non-directory {current} ({archive.name})"
                    )
                continue
            current.mkdir()
        return current

    def check_link_target(entry: str, linkname: str, *, relative_to_entry: bool) -> str:
        if linkname.startswith("/") or re.match(r"^[A-Za-z]:", linkname):
            raise ExtractionError(
                f"refusing to extract absolute link target {linkname!r} ({archive.name})"
            )
        base = posixpath.dirname(entry) if relative_to_entry else ""
        combined = posixpath.normpath(posixpath.join(base, linkname))
        if combined == ".." or combined.startswith("../"):
            raise ExtractionError(
                f"refusing to extract link escaping destination: {entry!r} -> {linkname!r} ({archive.name})"
            )
        return combined

    try:
        with tarfile.open(archive, mode="r:*") as tf:
            for member in tf:
                entry = normalize_member_path(member.name)
                if not entry:
                    continue
                target = dest / entry
                ensure_safe_parents(entry.split("/")[:-1])

                if member.isdir():
                    ensure_safe_parents(entry.split("/"))
                    continue

                if member.issym():
                    linkname = (member.linkname or "").replace("\\", "/").strip()
                    if not linkname:
                        continue
                    check_link_target(entry, linkname, relative_to_entry=True)
                    if target.exists() or target.is_symlink():
                        target.unlink()
                    os.symlink(linkname, target)
                    continue

                if member.islnk():
                    linkname = (member.linkname or "").replace("\\", "/").strip()
                    if not linkname:
                        continue
                    source = dest / check_link_target(entry, linkname, relative_to_entry=False)
                    if not source.exists():
                        raise ExtractionError(
                            f"hardlink target missing while extracting {entry!r} ({archive.name})"
                        )
                    if target.exists():
                        target.unlink()
                    os.link(source, target)
                    continue

                if not member.isreg():
                    # device nodes and fifos never appear in a runtime tree
                    continue

                if target.is_symlink():
                    raise ExtractionError(f"refusing to overwrite symlink {target} ({archive.name})")
                file_obj = tf.extractfile(member)
                if file_obj is None:
                    continue
                with file_obj as src, target.open("wb") as out:
                    shutil.copyfileobj(src, out)
                if member.mode:
                    os.chmod(target, member.mode & 0o777)
    except (tarfile.TarError, EOFError, zlib.error, OSError) as exc:
        raise ExtractionError(f"unable to decode runtime archive {archive.name}: {exc}") from exc


def find_runtime_dir(scratch: Path) -> Path:
    """Pick the extracted runtime directory.

    The first top-level directory (sorted by name) whose name contains
    "jre" or "jdk" wins; otherwise the last top-level directory is used.
    """
    try:
        candidates = sorted(item for item in scratch.iterdir() if item.is_dir())
    except OSError as exc:
        raise LayoutError(f"unable to list extracted archive at {scratch}: {exc}") from exc
    for candidate in candidates:
        if any(marker in candidate.name for marker in RUNTIME_NAME_MARKERS):
            return candidate
    if candidates:
        log_debug(
            f"no jre/jdk directory in archive; using {candidates[-1].name} "
            f"(from {len(candidates)} candidate(s))"
        )
        return candidates[-1]
    raise LayoutError("runtime archive contains no top-level directory")


def promote_bundle_home(root: Path, java_name: str) -> None:
    """Replace a macOS ``Contents/Home`` bundle with its ``Home`` directory."""
    if (root / "bin" / java_name).exists():
        return
    home = root / "Contents" / "Home"
    if not home.is_dir():
        return
    staged = root.with_name(f"{root.name}.home")
    shutil.move(str(home), str(staged))
    shutil.rmtree(root)
    staged.rename(root)
    log_debug(f"promoted Contents/Home bundle layout to {root}")


def make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def _remove_tree(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)


def materialize(
    archive: Path,
    workspace: "Workspace",
    *,
    version: int,
    source: str,
    java_name: str = "java",
) -> RuntimeHandle:
    scratch = workspace.extract_dir
    root = workspace.runtime_dir
    try:
        _remove_tree(scratch)
        _remove_tree(root)
        extract_archive(archive, scratch)
        shutil.move(str(find_runtime_dir(scratch)), str(root))
        promote_bundle_home(root, java_name)
        java = root / "bin" / java_name
        if not java.is_file():
            raise MissingEntryPointError(
                f"runtime from {archive.name} has no bin/{java_name} executable"
            )
        make_executable(java)
        _remove_tree(scratch)
    except RuntimeAcquisitionError:
        _discard_partial(scratch, root)
        raise
    except OSError as exc:
        _discard_partial(scratch, root)
        raise LayoutError(f"unable to lay out runtime from {archive.name}: {exc}") from exc
    return RuntimeHandle(root=root, java=java, version=version, source=source)


def _discard_partial(*paths: Path) -> None:
    for path in paths:
        try:
            _remove_tree(path)
        except OSError:
            pass
