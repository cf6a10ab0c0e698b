#!/usr/bin/env python3
"""runjar CLI entry point."""

from __future__ import annotations

import sys
import traceback
from pathlib import Path
from typing import List, Optional, Sequence

import click
import pooch
import typer

from .acquire import describe_plan
from .args import MaintenanceArgs, RunArgs
from .cache import CacheStore, default_cache_root
from .catalog import load_catalog
from .config import (
    ConfigFile,
    load_config,
    resolve_downloader,
    resolve_fallback_versions,
    resolve_java_version,
    resolve_verbose,
)
from .console import configure_console, log, log_debug, log_error, log_success
from .constants import (
    EXIT_CODE_INTERRUPT,
    EXIT_CODE_SUBPROCESS,
    EXIT_CODE_USAGE,
    PACKAGE_NAME,
)
from .context import LaunchOptions, default_http_client_factory, open_session
from .downloads import DOWNLOADER_BACKENDS, order_backends
from .errors import FAILURE_CAUSES, CLIError
from .execution import (
    LaunchResult,
    applicable_flag_sets,
    ensure_jar,
    fallback_candidates,
    launch,
)
from .platforms import get_platform_info, java_binary_name
from .prompts import InteractionAborted, prompt_confirm
from .utils import format_bytes, format_cli_command, sanitize_name
from .version import cli_version
from .workspaces import list_leftover_workspaces, remove_workspaces

app = typer.Typer(
    help="Run a JAR with an automatically downloaded Java runtime.",
    add_completion=False,
)


def _setup(verbose: bool, *, debug: bool = False) -> ConfigFile:
    config = load_config()
    verbose = debug or resolve_verbose(verbose, config)
    configure_console(verbose=verbose)
    pooch.get_logger().setLevel("DEBUG" if debug else "WARNING")
    return config


def _cache_store(config: ConfigFile) -> CacheStore:
    return CacheStore(default_cache_root(config.cache_dir))


def _launch_options(args: RunArgs, config: ConfigFile) -> LaunchOptions:
    version, source = resolve_java_version(args.java_version, config)
    log_debug(f"Java {version} requested (from {source})")
    fallback = not args.no_fallback
    if fallback and config.fallback is False:
        fallback = False
    return LaunchOptions(
        java_version=version,
        skip_cache=args.no_cache,
        fallback=fallback,
        force_workarounds=args.force_workarounds,
        keep_runtime=args.keep_runtime,
        fallback_versions=resolve_fallback_versions(config),
    )


def report_failure(result: LaunchResult) -> None:
    tried = ", ".join(f"Java {version}" for version in result.versions_tried)
    log_error(f"could not run the JAR (tried {tried})")
    if result.exhausted_workarounds:
        log_error("possible causes:")
        for cause in FAILURE_CAUSES:
            log_error(f"  - {cause}")


def handle_run(args: RunArgs) -> int:
    config = _setup(args.verbose, debug=args.debug)
    jar = ensure_jar(Path(args.jar or ""))
    options = _launch_options(args, config)
    cache = _cache_store(config)
    platform = get_platform_info()
    downloaders = order_backends(DOWNLOADER_BACKENDS, resolve_downloader(config))
    with open_session(
        options,
        cache,
        label=sanitize_name(jar),
        platform=platform,
        downloaders=downloaders,
    ) as session:
        result = launch(session, jar, args.jar_args)
    if result.succeeded:
        if result.version != options.java_version:
            log_success(f"ran with Java {result.version}")
        return 0
    report_failure(result)
    return EXIT_CODE_SUBPROCESS


def handle_dry_run(args: RunArgs) -> int:
    config = _setup(args.verbose, debug=args.debug)
    jar = ensure_jar(Path(args.jar or ""))
    options = _launch_options(args, config)
    cache = _cache_store(config)
    print("Dry run mode")
    with open_session(options, cache, label=sanitize_name(jar)) as session:
        info = session.platform_info()
        print(f"jar: {jar}")
        print(f"Java version: {options.java_version}")
        for line in describe_plan(session, options.java_version):
            print(f"  {line}")
        java = Path("<workspace>") / "java" / "bin" / java_binary_name(info.os_name)
        for flag_set in applicable_flag_sets(options.force_workarounds):
            flags = flag_set.flags_for(options.java_version)
            cmd = [str(java), *flags, "-jar", str(jar), *args.jar_args]
            print(f"would run ({flag_set.name}): {format_cli_command(cmd)}")
        if options.fallback:
            candidates = fallback_candidates(options.java_version, options.fallback_versions)
            listed = ", ".join(str(version) for version in candidates) or "none"
            print(f"fallback versions: {listed}")
        else:
            print("fallback: disabled")
    return 0


def handle_list_versions(args: MaintenanceArgs) -> int:
    _setup(args.verbose)
    catalog = load_catalog(default_http_client_factory, offline=args.dry_run)
    print("Available Java versions:")
    for row in catalog.rows:
        print(f"  {row.version:>3}  {row.description}")
    if catalog.source == "static":
        log("version catalog unavailable; showing built-in list")
    return 0


def handle_cache_info(args: MaintenanceArgs) -> int:
    config = _setup(args.verbose)
    cache = _cache_store(config)
    entries = cache.enumerate()
    print(f"Cache directory: {cache.root}")
    print(f"{len(entries)} cached runtime(s)")
    for entry in entries:
        print(f"  {entry.filename}  {format_bytes(entry.size)}")
    if entries:
        print(f"Total size: {format_bytes(cache.total_size())}")
    return 0


def handle_clean_cache(args: MaintenanceArgs) -> int:
    config = _setup(args.verbose)
    cache = _cache_store(config)
    entries = cache.enumerate()
    if args.dry_run:
        print("clean cache (dry-run):")
        print(f"- would delete: {cache.root} ({len(entries)} cached runtime(s))")
        return 0
    if not cache.root.exists():
        log("cache is already empty")
        return 0
    if not args.yes:
        question = f"Delete {len(entries)} cached runtime(s) in {cache.root}?"
        if not prompt_confirm(question, default=False):
            log("cache left untouched")
            return 0
    try:
        cache.purge_all()
    except OSError as exc:
        log_error(f"failed to delete {cache.root}: {exc}")
        return 1
    log_success(f"deleted cache directory {cache.root}")
    return 0


def handle_cleanup_runtimes(args: MaintenanceArgs) -> int:
    _setup(args.verbose)
    targets = list_leftover_workspaces()
    if not targets:
        log("no leftover runtime workspaces found")
        return 0
    if args.dry_run:
        print("cleanup runtimes (dry-run):")
        for target in targets:
            print(f"- would delete: {target}")
        return 0
    print(f"found {len(targets)} leftover runtime workspace(s):")
    for target in targets:
        print(f"  {target}")
    if not args.yes and not prompt_confirm("Delete them?", default=False):
        log("workspaces left untouched")
        return 0
    report = remove_workspaces(targets)
    for deleted in report.deleted:
        print(f"deleted: {deleted}")
    for record in report.errors:
        log_error(f"failed to delete {record['path']}: {record['error']}")
    return 0 if not report.errors else 1


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{PACKAGE_NAME} {cli_version()}")
        raise typer.Exit()


@app.command(
    context_settings={"allow_interspersed_args": False, "ignore_unknown_options": True}
)
def run(
    ctx: typer.Context,
    jar: Optional[str] = typer.Argument(None, help="path to the JAR to run"),
    jar_args: Optional[List[str]] = typer.Argument(
        None, help="arguments passed to the JAR unchanged"
    ),
    java_version: Optional[int] = typer.Option(
        None,
        "--java-version",
        "-j",
        help="Java major version to run with (default: $RUNJAR_JAVA_VERSION, config, or 21)",
    ),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="always download the runtime and do not cache it"
    ),
    no_fallback: bool = typer.Option(
        False, "--no-fallback", help="do not retry with other Java versions"
    ),
    force_workarounds: bool = typer.Option(
        False,
        "--force-workarounds",
        help="skip the standard run and start with compatibility flags",
    ),
    keep_runtime: bool = typer.Option(
        False, "--keep-runtime", help="keep the extracted runtime after exit"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="skip confirmation prompts"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="show what would happen without doing it"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="verbose output"),
    debug: bool = typer.Option(False, "--debug", help="verbose output plus tracebacks"),
    list_versions: bool = typer.Option(
        False, "--list-versions", help="list Java versions available for download"
    ),
    cache_info: bool = typer.Option(
        False, "--cache-info", help="show cached runtimes and their sizes"
    ),
    clean_cache: bool = typer.Option(
        False, "--clean-cache", help="delete every cached runtime"
    ),
    force_cleanup_runtimes: bool = typer.Option(
        False,
        "--force-cleanup-runtimes",
        help="delete runtime workspaces left behind in the temp directory",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="show the runjar version and exit",
    ),
) -> None:
    maintenance = MaintenanceArgs(yes=yes, dry_run=dry_run, verbose=verbose or debug)
    try:
        if list_versions:
            rc = handle_list_versions(maintenance)
        elif cache_info:
            rc = handle_cache_info(maintenance)
        elif clean_cache:
            rc = handle_clean_cache(maintenance)
        elif force_cleanup_runtimes:
            rc = handle_cleanup_runtimes(maintenance)
        elif jar is None:
            typer.echo(ctx.get_help(), err=True)
            log_error("error: missing JAR argument")
            raise typer.Exit(code=EXIT_CODE_USAGE)
        else:
            args = RunArgs(
                jar=jar,
                jar_args=list(jar_args or []),
                java_version=java_version,
                no_cache=no_cache,
                no_fallback=no_fallback,
                force_workarounds=force_workarounds,
                keep_runtime=keep_runtime,
                yes=yes,
                dry_run=dry_run,
                verbose=verbose,
                debug=debug,
            )
            rc = handle_dry_run(args) if dry_run else handle_run(args)
    except CLIError as exc:
        if debug:
            traceback.print_exc()
        log_error(f"error: {exc}")
        raise typer.Exit(code=EXIT_CODE_USAGE) from exc
    except InteractionAborted as exc:
        log_error("aborted")
        raise typer.Exit(code=EXIT_CODE_INTERRUPT) from exc
    raise typer.Exit(code=rc)


def main(argv: Optional[Sequence[str]] = None) -> int:
    command = typer.main.get_command(app)
    try:
        rv = command.main(
            args=list(argv) if argv is not None else None,
            prog_name=PACKAGE_NAME,
            standalone_mode=False,
        )
    except SystemExit as exc:
        return int(exc.code or 0)
    except click.exceptions.Exit as exc:
        return int(exc.exit_code)
    except (KeyboardInterrupt, click.exceptions.Abort, typer.Abort):
        log_error("interrupted")
        return EXIT_CODE_INTERRUPT
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    return int(rv or 0)


if __name__ == "__main__":
    sys.exit(main())
