"""Interactive prompt helpers for runjar."""

from __future__ import annotations

import sys

import questionary
import typer


class InteractionAborted(Exception):
    """Raised when the interactive session is cancelled."""


def prompt_confirm(prompt: str, *, default: bool) -> bool:
    if not sys.stdin.isatty():
        # piped answers ("echo y | runjar ...") cannot drive questionary
        return typer.confirm(prompt, default=default, err=True)
    result = questionary.confirm(prompt, default=default).ask()
    if result is None:
        raise InteractionAborted()
    return bool(result)
