"""Convergence logic for the API-key resource.

A host (control loop, CI job, the bundled CLI) calls the four lifecycle
operations with a :class:`~budgeteer.models.ApiKeyResource`; each operation
talks to the service through an explicitly supplied client and returns a
*new* resource describing the resulting state, which the host persists.

Policies:

* **Adopt on create** -- if a record with the desired name already exists,
  it becomes the managed record instead of a duplicate being created;
  only its budget is reconciled.
* **Selective update** -- only the fields that differ between the previous
  and desired state are sent.
* **Drift on read** -- a record that disappeared remotely is reported by
  returning the resource with an empty ``id``, never as an error.
* **Secret stability** -- ``key_value`` is only ever replaced by a secret
  read from the service, never cleared because a listing omitted it.

The reconcilers hold nothing but their client, so separate instances can
run concurrently for different resources.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence, TypeVar

from pydantic import ValidationError

from budgeteer.client import AsyncBudgeteerClient, BudgeteerClient
from budgeteer.exceptions import BudgeteerError, InvalidUsageError
from budgeteer.models import ApiKeyResource, KeyRecord, KeySummary
from budgeteer.output import debug

R = TypeVar("R", bound=KeySummary)


# ------------------------------------------------------------------ #
# Pure helpers
# ------------------------------------------------------------------ #


def find_by_name(records: Sequence[R], name: str) -> Optional[R]:
    """Return the first record named *name*, or ``None``."""
    for record in records:
        if record.name == name:
            return record
    return None


def find_by_id(records: Sequence[R], key_id: str) -> Optional[R]:
    """Return the record whose integer id renders as *key_id*, or ``None``."""
    for record in records:
        if str(record.id) == key_id:
            return record
    return None


def changed_fields(desired: ApiKeyResource, previous: ApiKeyResource) -> dict[str, Any]:
    """Return the writable fields whose desired value differs from *previous*."""
    return {
        field: value
        for field, value in desired.desired().items()
        if getattr(previous, field) != value
    }


def apply_summary(resource: ApiKeyResource, summary: KeySummary) -> ApiKeyResource:
    """Copy the service-authoritative fields of *summary* onto *resource*.

    Timestamps the service did not report keep their previous value.
    """
    update: dict[str, Any] = {
        "name": summary.name,
        "budget": int(summary.budget),
        "costs": summary.costs,
    }
    if summary.created_at is not None:
        update["created_at"] = summary.created_at
    if summary.last_used_at is not None:
        update["last_used_at"] = summary.last_used_at
    return resource.model_copy(update=update)


def apply_secret_value(resource: ApiKeyResource, key: Optional[str]) -> ApiKeyResource:
    """Set ``key_value`` to *key*, unless the service did not return a secret."""
    if key is None:
        return resource
    return resource.model_copy(update={"key_value": key})


def apply_secret(resource: ApiKeyResource, record: Optional[KeyRecord]) -> ApiKeyResource:
    """Copy the secret of *record* onto *resource* when there is one."""
    return apply_secret_value(resource, record.key if record is not None else None)


def build_resource(fields: dict[str, Any]) -> ApiKeyResource:
    """Validate *fields* into an :class:`ApiKeyResource`.

    Raises:
        InvalidUsageError: If a desired value is invalid, such as an empty name.
    """
    try:
        return ApiKeyResource.model_validate(fields)
    except ValidationError as exc:
        problem = exc.errors()[0]
        field = ".".join(str(part) for part in problem["loc"]) or "API key"
        raise InvalidUsageError(f"Invalid {field}: {problem['msg']}") from exc


def _forget_id(resource: ApiKeyResource) -> ApiKeyResource:
    return resource.model_copy(update={"id": ""})


@contextmanager
def _carrying(resource: ApiKeyResource) -> Iterator[None]:
    """Attach *resource* to any :class:`BudgeteerError` raised inside the block.

    Used once the remote identifier is known, so that a failure in a later
    step still lets the host persist the identifier.
    """
    try:
        yield
    except BudgeteerError as exc:
        if exc.resource is None:
            exc.resource = resource
        raise


def _require_id(resource: ApiKeyResource, operation: str) -> None:
    if not resource.exists:
        raise InvalidUsageError(f"Cannot {operation} API key '{resource.name}': it has no id")


# ------------------------------------------------------------------ #
# Reconcilers
# ------------------------------------------------------------------ #


class ApiKeyReconciler:
    """Blocking reconciler for API-key resources.

    Args:
        client: An entered :class:`~budgeteer.client.BudgeteerClient`.

    Example::

        with BudgeteerClient(config) as client:
            reconciler = ApiKeyReconciler(client)
            state = reconciler.create(ApiKeyResource(name="svc-a", budget=1000))
    """

    def __init__(self, client: BudgeteerClient) -> None:
        self._client = client

    def create(self, desired: ApiKeyResource) -> ApiKeyResource:
        """Create the key, or adopt an existing key with the same name.

        Running this twice with the same name never creates a second record;
        the second run adopts the first and reconciles its budget.

        Raises:
            TransportError, DecodeError, RemoteRejected: On any failed call.
                Once the identifier is known the error carries the partial
                state as ``exc.resource``.
        """
        existing = find_by_name(self._client.list_key_summaries(), desired.name)
        if existing is not None:
            adopted = desired.model_copy(update={"id": str(existing.id)})
            debug(f"Adopting existing API key '{desired.name}' (id {existing.id})")
            with _carrying(adopted):
                if int(existing.budget) != desired.budget:
                    self._client.update_key_budget(adopted.id, desired.budget)
                return self.read(adopted)

        created = self._client.create_key(desired.name, desired.budget)
        debug(f"Created API key '{desired.name}' (id {created.id})")
        state = apply_secret_value(desired.model_copy(update={"id": str(created.id)}), created.key)
        with _carrying(state):
            return self.read(state)

    def read(self, current: ApiKeyResource) -> ApiKeyResource:
        """Refresh the computed fields from the service.

        Returns *current* untouched when it has no id, and a copy with an
        empty id when the service no longer has the record. Never writes to
        the service.
        """
        if not current.exists:
            return current

        summary = find_by_id(self._client.list_key_summaries(), current.id)
        if summary is None:
            debug(f"API key {current.id} no longer exists remotely")
            return _forget_id(current)

        state = apply_summary(current, summary)
        return apply_secret(state, find_by_id(self._client.list_full_keys(), current.id))

    def update(self, desired: ApiKeyResource, previous: ApiKeyResource) -> ApiKeyResource:
        """Push the fields that changed between *previous* and *desired*, then read.

        Raises:
            InvalidUsageError: If *previous* has no id, or *desired* has an
                invalid value such as an empty name.
            UpdateRejected: If the service does not answer 200.
        """
        _require_id(previous, "update")
        changes = changed_fields(desired, previous)
        state = build_resource({**previous.model_dump(), **desired.desired()})
        if changes:
            debug(f"Updating API key {previous.id}: {', '.join(sorted(changes))}")
            self._client.update_key(previous.id, changes)
        return self.read(state)

    def delete(self, current: ApiKeyResource) -> ApiKeyResource:
        """Delete the key and return the resource with an empty id.

        Raises:
            InvalidUsageError: If *current* has no id.
            DeleteRejected: If the service does not answer 200; the caller's
                resource keeps its id so the deletion is retried next time.
        """
        _require_id(current, "delete")
        self._client.delete_key(current.id)
        return _forget_id(current)

    def apply(self, desired: ApiKeyResource) -> ApiKeyResource:
        """Converge *desired* in a single call: create, recreate after drift, or update."""
        if not desired.exists:
            return self.create(desired)
        observed = self.read(desired)
        if not observed.exists:
            debug(f"Recreating drifted API key '{desired.name}'")
            return self.create(_forget_id(desired))
        return self.update(desired, observed)


class AsyncApiKeyReconciler:
    """Non-blocking reconciler; same contract as :class:`ApiKeyReconciler`.

    If the awaiting task is cancelled, the in-flight request is aborted and
    :class:`asyncio.CancelledError` propagates; nothing is reported as
    success or as a :class:`~budgeteer.exceptions.BudgeteerError`.
    """

    def __init__(self, client: AsyncBudgeteerClient) -> None:
        self._client = client

    async def create(self, desired: ApiKeyResource) -> ApiKeyResource:
        """Create the key or adopt a same-named one; see :meth:`ApiKeyReconciler.create`."""
        existing = find_by_name(await self._client.list_key_summaries(), desired.name)
        if existing is not None:
            adopted = desired.model_copy(update={"id": str(existing.id)})
            debug(f"Adopting existing API key '{desired.name}' (id {existing.id})")
            with _carrying(adopted):
                if int(existing.budget) != desired.budget:
                    await self._client.update_key_budget(adopted.id, desired.budget)
                return await self.read(adopted)

        created = await self._client.create_key(desired.name, desired.budget)
        debug(f"Created API key '{desired.name}' (id {created.id})")
        state = apply_secret_value(desired.model_copy(update={"id": str(created.id)}), created.key)
        with _carrying(state):
            return await self.read(state)

    async def read(self, current: ApiKeyResource) -> ApiKeyResource:
        """Refresh computed fields; an empty id in the result means the key vanished."""
        if not current.exists:
            return current

        summary = find_by_id(await self._client.list_key_summaries(), current.id)
        if summary is None:
            debug(f"API key {current.id} no longer exists remotely")
            return _forget_id(current)

        state = apply_summary(current, summary)
        return apply_secret(state, find_by_id(await self._client.list_full_keys(), current.id))

    async def update(self, desired: ApiKeyResource, previous: ApiKeyResource) -> ApiKeyResource:
        """Push the fields that changed between *previous* and *desired*, then read."""
        _require_id(previous, "update")
        changes = changed_fields(desired, previous)
        state = build_resource({**previous.model_dump(), **desired.desired()})
        if changes:
            debug(f"Updating API key {previous.id}: {', '.join(sorted(changes))}")
            await self._client.update_key(previous.id, changes)
        return await self.read(state)

    async def delete(self, current: ApiKeyResource) -> ApiKeyResource:
        """Delete the key and return the resource with an empty id."""
        _require_id(current, "delete")
        await self._client.delete_key(current.id)
        return _forget_id(current)

    async def apply(self, desired: ApiKeyResource) -> ApiKeyResource:
        """Converge *desired*: create, recreate after drift, or update."""
        if not desired.exists:
            return await self.create(desired)
        observed = await self.read(desired)
        if not observed.exists:
            debug(f"Recreating drifted API key '{desired.name}'")
            return await self.create(_forget_id(desired))
        return await self.update(desired, observed)
