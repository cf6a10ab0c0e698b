"""Console helpers for runjar."""

from __future__ import annotations

from typing import Optional

import typer

_VERBOSE = False


def configure_console(*, verbose: bool) -> None:
    global _VERBOSE
    _VERBOSE = verbose


def _emit(message: str, *, fg: Optional[str] = None) -> None:
    # stdout belongs to the launched program
    text = f"[runjar] {message}"
    if fg:
        text = typer.style(text, fg=fg)
    typer.echo(text, err=True)


def log(message: str) -> None:
    _emit(message)


def log_success(message: str) -> None:
    _emit(message, fg=typer.colors.GREEN)


def log_warning(message: str) -> None:
    _emit(message, fg=typer.colors.YELLOW)


def log_debug(message: str) -> None:
    if not _VERBOSE:
        return
    _emit(f"debug: {message}", fg=typer.colors.BLUE)


def log_error(message: str) -> None:
    _emit(message, fg=typer.colors.RED)
