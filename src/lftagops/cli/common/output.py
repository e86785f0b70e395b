"""Output formatting utilities for the CLI."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import questionary
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.theme import Theme

from lftagops.cli.common.tui_style import QUESTIONARY_STYLE_CONFIRM

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)


def configure_logging(verbose: bool = False) -> None:
    """Route lftagops log records through Rich; DEBUG when verbose, else WARNING."""
    logger = logging.getLogger("lftagops")
    logger.handlers.clear()
    logger.addHandler(
        RichHandler(console=console, show_path=False, rich_tracebacks=True)
    )
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def _values(values: Iterable[str]) -> str:
    return ", ".join(sorted(values))


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def _q_try(self, fn, *args, **kwargs):
        """Call questionary prompts and drop unsupported kwargs on older versions."""
        try:
            return fn(*args, **kwargs)
        except TypeError:
            for k in ("pointer", "auto_enter"):
                kwargs.pop(k, None)
            return fn(*args, **kwargs)

    def _q(self, message: str) -> str:
        """Prefix Questionary prompts to be LFTAGOPS consistent."""
        return f"[LFTAGOPS] {message}"

    def info(self, msg: str) -> None:
        """Print an info message."""
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots") as status:
            yield status

    def success(self, msg: str) -> None:
        """Print a success message."""
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        """Print a header message."""
        console.print(f"[title]{title}[/]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def confirm(self, message: str, *, default: bool = False) -> bool:
        """
        Ask the user for confirmation using a standardized Questionary prompt.

        Args:
            message: Confirmation question shown to the user.
            default: Default answer if the user just presses enter.

        Returns:
            True if the user confirms, False otherwise.
        """
        console.print("[meta]Use y/n then Enter[/]")

        prompt = self._q_try(
            questionary.confirm,
            self._q(message),
            default=default,
            style=QUESTIONARY_STYLE_CONFIRM,
            qmark="✦",
            auto_enter=False,
        )
        return bool(prompt.ask())

    def tags_table(self, tags: Iterable[Any], title: str = "LF-Tags") -> None:
        """
        Expects objects with .key and .values (like lftagops.core.tags.TagPair)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Key", style="ok", no_wrap=True)
        t.add_column("Values")

        for pair in tags:
            t.add_row(pair.key, _values(pair.values))

        console.print(t)

    def failures_table(self, failures: Iterable[Any], title: str = "Failures") -> None:
        """
        Expects objects with .tag_key .tag_values .error_code .error_message
        (like lftagops.core.association.FailureItem)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Key", style="ok", no_wrap=True)
        t.add_column("Values")
        t.add_column("Error", style="err")

        for f in failures:
            t.add_row(
                f.tag_key,
                _values(f.tag_values),
                f"{f.error_code}: {f.error_message}",
            )

        console.print(t)

    def drift_table(self, drift: Any, title: str = "Drift") -> None:
        """Render missing / unexpected / changed keys of a TagDrift."""
        t = Table(title=title, show_lines=False)
        t.add_column("Key", style="ok", no_wrap=True)
        t.add_column("Change")
        t.add_column("Desired", style="meta")
        t.add_column("Actual", style="meta")

        actual = drift.actual.as_dict() if drift.actual else {}
        for key in drift.missing:
            t.add_row(key, "[err]missing[/]", "", "")
        for key in drift.unexpected:
            t.add_row(key, "[warn]unexpected[/]", "", _values(actual.get(key, ())))
        for key, (want, have) in drift.changed.items():
            t.add_row(key, "[warn]changed[/]", _values(want), _values(have))

        console.print(t)


out = Out()
