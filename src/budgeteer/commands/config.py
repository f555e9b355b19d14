"""Config commands -- view and modify the stored configuration.

Provides the ``budgeteer config`` sub-command group for reading and
updating the user's config file (:class:`~budgeteer.models.StoredConfig`).
The file holds the service host, the *source* of the API key and request
settings; the API key itself is never written or printed.
"""

from __future__ import annotations

import typer

from budgeteer.exit_codes import EXIT_INVALID_USAGE
from budgeteer.output import error, get_output, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the stored configuration.

    Example::

        budgeteer config show --json
    """
    from budgeteer.config import config_path, load_stored_config

    config = load_stored_config()
    info(f"Config file: {config_path()}")
    get_output().settings(config.model_dump(mode="json"))


@config_app.command("path")
def config_path_command() -> None:
    """Print the path of the config file."""
    from budgeteer.config import config_path
    get_output().line(str(config_path()))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g. 'request.timeout')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to the type of
    the existing field (bool, int, float or str) and the result is validated
    before saving.

    Example::

        budgeteer config set host https://budget.example.com
        budgeteer config set api_key_source env:BUDGET_TOKEN
        budgeteer config set request.timeout 10
    """
    from budgeteer.config import load_stored_config, save_stored_config
    from budgeteer.models import StoredConfig

    config = load_stored_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    current = target[final_key]
    coerced: object
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, (int, float)):
        try:
            coerced = type(current)(value)
        except ValueError:
            error(f"Expected a number for {key}, got: {value}")
            raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        new_config = StoredConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_stored_config(new_config)
    success(f"Set {key} = {coerced}")
