"""Rendering of key states and diagnostics for the budgeteer CLI.

stdout carries data only: resource states, key listings and the stored
config, which a calling script may capture and persist. Everything else
(progress, warnings, errors and the ``--verbose`` request trace) goes to
stderr.

Three renderings exist for data:

* ``json`` -- machine-readable, values kept in their native types;
* ``plain`` -- ``field<TAB>value`` lines, used when stdout is piped;
* ``rich`` -- tables on an interactive terminal.

``key_value`` is masked in every rendering unless the caller explicitly
reveals it.

The clients and the reconciler report through the module-level
:func:`debug` / :func:`info` helpers, which delegate to the
:class:`OutputManager` installed by :func:`~budgeteer.app.main_callback`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from budgeteer.models import ApiKeyResource, KeySummary

MASK = "********"

_LIST_COLUMNS = ("id", "name", "budget", "costs", "created_at", "last_used_at")


class OutputFormat(str, Enum):
    """Data rendering. ``AUTO`` picks ``RICH`` on a colour terminal, else ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


# Diagnostic level -> (plain prefix, rich markup, hidden by --quiet, needs --verbose)
_LEVELS: dict[str, tuple[str, str, bool, bool]] = {
    "info": ("", "{}", True, False),
    "success": ("", "[green]{}[/green]", True, False),
    "warning": ("Warning: ", "[yellow]Warning:[/yellow] {}", False, False),
    "error": ("Error: ", "[bold red]Error:[/bold red] {}", False, False),
    "debug": ("[debug] ", "[dim]\\[debug] {}[/dim]", False, True),
}


def _stdout_is_terminal() -> bool:
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _color_disabled_by_env() -> bool:
    """``NO_COLOR`` (any value, even empty) or ``TERM=dumb`` turn colour off."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def _budget_label(budget: float, unlimited: bool) -> str:
    return "unlimited" if unlimited else f"{budget:g}"


def state_view(state: ApiKeyResource, reveal: bool = False) -> dict[str, Any]:
    """Return *state* as a JSON-ready dict, with ``key_value`` masked unless *reveal*."""
    data = state.model_dump(mode="json")
    if data.get("key_value") and not reveal:
        data["key_value"] = MASK
    return data


def _flatten(data: dict[str, Any], prefix: str = "") -> Iterable[tuple[str, Any]]:
    for key, value in data.items():
        if isinstance(value, dict):
            yield from _flatten(value, f"{prefix}{key}.")
        else:
            yield f"{prefix}{key}", value


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


class OutputManager:
    """Holds the chosen rendering and verbosity for one CLI invocation.

    Args:
        format: Data rendering; ``AUTO`` is resolved immediately.
        no_color: Drop colour and markup on both streams.
        quiet: Hide ``info`` and ``success`` messages.
        verbose: Show ``debug`` messages (one line per HTTP request).
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self.no_color = no_color or _color_disabled_by_env()
        self.quiet = quiet
        self.verbose = verbose
        if format is OutputFormat.AUTO:
            format = (
                OutputFormat.RICH
                if _stdout_is_terminal() and not self.no_color
                else OutputFormat.PLAIN
            )
        self.format = format
        self._console = Console(
            file=sys.stdout,
            no_color=self.no_color,
            force_terminal=True if format is OutputFormat.RICH else None,
        )
        self._err_console = Console(file=sys.stderr, no_color=self.no_color, stderr=True)

    # --- data (stdout) ---

    def line(self, text: str) -> None:
        """Write one raw line of data."""
        print(text, file=sys.stdout, flush=True)

    def state(self, state: ApiKeyResource, reveal: bool = False) -> None:
        """Render one key state, the record a host persists after an operation."""
        view = state_view(state, reveal)
        if self.format is OutputFormat.JSON:
            self._json(view)
            return
        view["budget"] = _budget_label(state.budget, state.is_unlimited)
        if self.format is OutputFormat.PLAIN:
            for field, value in view.items():
                self.line(f"{field}\t{_cell(value)}")
            return
        table = Table(title=f"API key {state.name}", show_header=False)
        table.add_column("field", style="bold cyan")
        table.add_column("value")
        for field, value in view.items():
            table.add_row(field, _cell(value))
        self._console.print(table)

    def key_list(self, summaries: list[KeySummary]) -> None:
        """Render the ``/keyView`` listing. Listings never contain secrets."""
        if self.format is OutputFormat.JSON:
            self._json([s.model_dump(mode="json") for s in summaries])
            return
        rows = [
            [
                str(s.id),
                s.name,
                _budget_label(s.budget, s.is_unlimited),
                f"{s.costs:g}",
                _cell(s.created_at),
                _cell(s.last_used_at),
            ]
            for s in summaries
        ]
        if self.format is OutputFormat.PLAIN:
            self.line("\t".join(_LIST_COLUMNS))
            for row in rows:
                self.line("\t".join(row))
            return
        table = Table(title="API keys", header_style="bold cyan")
        for column in _LIST_COLUMNS:
            table.add_column(column)
        for row in rows:
            table.add_row(*row)
        self._console.print(table)

    def settings(self, data: dict[str, Any]) -> None:
        """Render a settings mapping; nested keys use dot notation outside JSON."""
        if self.format is OutputFormat.JSON:
            self._json(data)
            return
        pairs = list(_flatten(data))
        if self.format is OutputFormat.PLAIN:
            for key, value in pairs:
                self.line(f"{key}\t{_cell(value)}")
            return
        table = Table(show_header=False)
        table.add_column("key", style="bold cyan")
        table.add_column("value")
        for key, value in pairs:
            table.add_row(key, _cell(value))
        self._console.print(table)

    def _json(self, data: Any) -> None:
        self.line(json.dumps(data, indent=2, ensure_ascii=False))

    # --- diagnostics (stderr) ---

    def report(self, level: str, message: str) -> None:
        """Write a diagnostic at *level* (``info``, ``success``, ``warning``, ``error``, ``debug``)."""
        prefix, markup, quiet_hides, verbose_only = _LEVELS[level]
        if (quiet_hides and self.quiet) or (verbose_only and not self.verbose):
            return
        if self.no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        else:
            self._err_console.print(markup.format(escape(message)), highlight=False)


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (used between tests)."""
    global _output
    _output = None


def info(message: str) -> None:
    get_output().report("info", message)


def success(message: str) -> None:
    get_output().report("success", message)


def warning(message: str) -> None:
    get_output().report("warning", message)


def error(message: str) -> None:
    get_output().report("error", message)


def debug(message: str) -> None:
    get_output().report("debug", message)
