"""Typer application and CLI entry point for budgeteer.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``keys``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, registers commands and
invokes the Typer app. Unhandled exceptions are written to a crash log
under the data directory.

See Also:
    :mod:`budgeteer.config`: Provider configuration resolution.
    :mod:`budgeteer.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from budgeteer import __version__
from budgeteer.commands.config import config_app
from budgeteer.commands.keys import keys_app
from budgeteer.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="budgeteer",
    help="Declaratively manage API keys on a budget-tracking service.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(keys_app, name="keys", help="Create, read, update, delete and apply API keys.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"budgeteer {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="Base URL of the service (overrides BUDGETEER_HOST)."
    ),
    api_key_source: Optional[str] = typer.Option(
        None,
        "--api-key-source",
        help="Credential source: env:VAR, file:/path or prompt (overrides BUDGETEER_API_KEY).",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show every HTTP request on stderr."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~budgeteer.output.OutputManager` and stores
    the connection overrides in ``ctx.obj`` for the sub-commands.
    """
    from budgeteer.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["host"] = host
    ctx.obj["api_key_source"] = api_key_source


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from budgeteer.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``budgeteer`` console script.

    :class:`~budgeteer.exceptions.BudgeteerError` instances that escape a
    command cause a clean exit with the error's ``exit_code``. All other
    exceptions produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from budgeteer.exceptions import BudgeteerError
        from budgeteer.output import error

        if isinstance(exc, BudgeteerError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
