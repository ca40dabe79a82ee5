"""Shared console instance for strip-ansi-escapes diagnostics."""

from typing import Any

from rich.console import Console

_console = Console(soft_wrap=True, stderr=True)


def print_error(title: str | None, *args: Any) -> None:  # noqa: ANN401
    """Print an error message."""
    title = title or "Error:"
    _console.print(f"[bold]{title}", *args, style="red")
    _console.file.flush()
