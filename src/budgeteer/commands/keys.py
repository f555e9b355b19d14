"""Key commands -- run the reconciler against the service from the shell.

Provides the ``budgeteer keys`` sub-command group. The CLI acts as a
minimal host: it takes the persisted identifier as an argument, runs one
lifecycle operation, and prints the resulting resource state on stdout so
that a calling script can store it. ``key_value`` is masked unless
``--reveal`` is given.

Errors from the service are printed to stderr and mapped to the exit code
of the failing :class:`~budgeteer.exceptions.BudgeteerError`. When a
create fails after the identifier became known, the partial state is
still printed so it is not lost.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

import typer

from budgeteer.client import BudgeteerClient
from budgeteer.exceptions import BudgeteerError
from budgeteer.exit_codes import EXIT_INVALID_USAGE, EXIT_NOT_FOUND
from budgeteer.models import UNLIMITED_BUDGET, ApiKeyResource
from budgeteer.output import error, get_output, success, warning
from budgeteer.reconciler import ApiKeyReconciler, build_resource


keys_app = typer.Typer(no_args_is_help=True)

_REVEAL = typer.Option(False, "--reveal", help="Print key_value in clear text.")



@contextmanager
def _reported() -> Iterator[None]:
    """Turn a :class:`BudgeteerError` into an error line and its exit code.

    When the error carries a partially converged resource, that state is
    printed first (masked) so the caller can still record the identifier.
    """
    try:
        yield
    except BudgeteerError as exc:
        if exc.resource is not None:
            warning("Operation failed after the key was identified; partial state follows.")
            get_output().state(exc.resource)
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


@contextmanager
def _connect(ctx: typer.Context) -> Iterator[BudgeteerClient]:
    """Resolve the provider config and yield an open client.

    Resolution happens per command so nothing is shared between
    invocations.
    """
    from budgeteer.config import resolve_provider_config

    obj = ctx.obj or {}
    with _reported():
        config = resolve_provider_config(
            cli_host=obj.get("host"),
            cli_api_key_source=obj.get("api_key_source"),
        )
        with BudgeteerClient(config, transport=obj.get("transport")) as client:
            yield client


@contextmanager
def _reconciler(ctx: typer.Context) -> Iterator[ApiKeyReconciler]:
    with _connect(ctx) as client:
        yield ApiKeyReconciler(client)


def _desired(**fields) -> ApiKeyResource:
    """Validate the command-line fields before anything is sent."""
    with _reported():
        return build_resource(fields)


def _placeholder(key_id: str) -> ApiKeyResource:
    """A resource known only by its id; reading it fills in the rest."""
    return ApiKeyResource(id=key_id, name=f"key-{key_id}")


def _not_found(key_id: str) -> typer.Exit:
    error(f"API key {key_id} does not exist")
    return typer.Exit(code=EXIT_NOT_FOUND)


@keys_app.command("list")
def keys_list(ctx: typer.Context) -> None:
    """List every API key known to the service (secrets are never listed)."""
    with _connect(ctx) as client:
        summaries = client.list_key_summaries()
    get_output().key_list(summaries)


@keys_app.command("create")
def keys_create(
    ctx: typer.Context,
    name: str = typer.Argument(help="Display name; an existing key with this name is adopted."),
    budget: int = typer.Option(UNLIMITED_BUDGET, "--budget", "-b", help="Spending ceiling, -1 for unlimited."),
    reveal: bool = _REVEAL,
) -> None:
    """Create an API key, or adopt the existing key with the same name.

    Example::

        budgeteer keys create svc-a --budget 1000
    """
    desired = _desired(name=name, budget=budget)
    with _reconciler(ctx) as reconciler:
        state = reconciler.create(desired)
    success(f"API key '{state.name}' is managed as id {state.id}")
    get_output().state(state, reveal)


@keys_app.command("read")
def keys_read(
    ctx: typer.Context,
    key_id: str = typer.Argument(help="Identifier of the key."),
    reveal: bool = _REVEAL,
) -> None:
    """Show the current remote state of an API key."""
    with _reconciler(ctx) as reconciler:
        state = reconciler.read(_placeholder(key_id))
    if not state.exists:
        raise _not_found(key_id)
    get_output().state(state, reveal)


@keys_app.command("update")
def keys_update(
    ctx: typer.Context,
    key_id: str = typer.Argument(help="Identifier of the key."),
    name: Optional[str] = typer.Option(None, "--name", help="New display name."),
    budget: Optional[int] = typer.Option(None, "--budget", "-b", help="New spending ceiling."),
    reveal: bool = _REVEAL,
) -> None:
    """Change the name and/or budget of an existing API key.

    Only the fields that differ from the current remote record are sent.
    """
    if name is None and budget is None:
        error("Nothing to update: pass --name and/or --budget")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    changes = {k: v for k, v in (("name", name), ("budget", budget)) if v is not None}

    with _reconciler(ctx) as reconciler:
        previous = reconciler.read(_placeholder(key_id))
        if not previous.exists:
            raise _not_found(key_id)
        desired = build_resource({**previous.model_dump(), **changes})
        state = reconciler.update(desired, previous)
    get_output().state(state, reveal)


@keys_app.command("delete")
def keys_delete(
    ctx: typer.Context,
    key_id: str = typer.Argument(help="Identifier of the key."),
) -> None:
    """Delete an API key on the service."""
    with _reconciler(ctx) as reconciler:
        reconciler.delete(_placeholder(key_id))
    success(f"Deleted API key {key_id}")


@keys_app.command("apply")
def keys_apply(
    ctx: typer.Context,
    name: str = typer.Argument(help="Desired display name."),
    budget: int = typer.Option(UNLIMITED_BUDGET, "--budget", "-b", help="Desired spending ceiling."),
    key_id: str = typer.Option("", "--id", help="Previously persisted identifier, if any."),
    reveal: bool = _REVEAL,
) -> None:
    """Converge a key towards the desired name and budget.

    Without ``--id`` this behaves like ``create``. With ``--id`` the key is
    read first; if it vanished remotely it is recreated, otherwise the
    changed fields are updated.

    Example::

        budgeteer keys apply svc-a --budget 500 --id 7
    """
    desired = _desired(id=key_id, name=name, budget=budget)
    with _reconciler(ctx) as reconciler:
        state = reconciler.apply(desired)
    get_output().state(state, reveal)
