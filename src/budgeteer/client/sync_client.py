"""Synchronous client for the budget-tracking service's key endpoints.

This module provides :class:`BudgeteerClient`, the blocking client used by
:class:`~budgeteer.reconciler.ApiKeyReconciler` and the CLI. It wraps
:class:`httpx.Client` and layers on:

- **Auth injection** -- an ``Authorization: Bearer`` header on every
  request, including the listing endpoints.
- **Error mapping** -- network failures become
  :class:`~budgeteer.exceptions.TransportError`; unexpected statuses become
  :class:`~budgeteer.exceptions.RemoteRejected` subclasses carrying the
  status and a body excerpt.
- **Typed decoding** -- bodies are validated into
  :mod:`budgeteer.models` records.

There is no retry and no caching: a single failure is the outcome of the
call, and the caller decides whether to try again on a later pass.

See Also:
    :class:`~budgeteer.client.async_client.AsyncBudgeteerClient` for the
    equivalent non-blocking implementation.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from budgeteer.client.response import decode_list, decode_one, expect_status, expect_success
from budgeteer.exceptions import (
    CreateRejected,
    DeleteRejected,
    InvalidUsageError,
    TransportError,
    UpdateRejected,
)
from budgeteer.models import CreatedKey, KeyRecord, KeySummary, ProviderConfig
from budgeteer.output import debug

KEY_PATH = "/key"
KEY_VIEW_PATH = "/keyView"
WRITABLE_FIELDS = frozenset({"name", "budget"})


def build_headers(config: ProviderConfig) -> dict[str, str]:
    """Return the headers sent with every request."""
    return {
        "Accept": "application/json",
        "Authorization": f"Bearer {config.api_key}",
    }


def build_update_payload(fields: dict[str, Any]) -> dict[str, Any]:
    """Validate and return the body of a ``PUT /key`` request.

    Raises:
        InvalidUsageError: If *fields* is empty or names a field the
            service does not accept for writing, or sets an empty name.
    """
    if not fields:
        raise InvalidUsageError("An update needs at least one of: budget, name")
    unknown = set(fields) - WRITABLE_FIELDS
    if unknown:
        raise InvalidUsageError(f"Fields cannot be written: {', '.join(sorted(unknown))}")
    if "name" in fields and not fields["name"]:
        raise InvalidUsageError("An API key name cannot be empty")
    return dict(fields)


class BudgeteerClient:
    """Synchronous HTTP client for the key endpoints.

    Must be used as a context manager so that the underlying transport is
    opened and closed. Each reconcile call should be handed its own client
    (or share one only within a single thread of work); the client keeps
    no state besides its connection pool.

    Args:
        config: Resolved provider configuration (base URL, credential,
            request settings).
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.

    Example::

        with BudgeteerClient(config) as client:
            for summary in client.list_key_summaries():
                print(summary.name, summary.budget)
    """

    def __init__(
        self,
        config: ProviderConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> BudgeteerClient:
        self._client = httpx.Client(
            base_url=self._config.base_url,
            headers=build_headers(self._config),
            timeout=self._config.request.timeout,
            verify=self._config.request.verify_ssl,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Key endpoints
    # ------------------------------------------------------------------ #

    def list_key_summaries(self) -> list[KeySummary]:
        """``GET /keyView`` -- every key record, without the secret."""
        response = self.request("GET", KEY_VIEW_PATH)
        expect_success(response, "Failed to list API keys")
        return decode_list(response, KeySummary)

    def list_full_keys(self) -> list[KeyRecord]:
        """``GET /key`` -- every key record, including the secret."""
        response = self.request("GET", KEY_PATH)
        expect_success(response, "Failed to list API keys")
        return decode_list(response, KeyRecord)

    def create_key(self, name: str, budget: int) -> CreatedKey:
        """``POST /key`` -- create a key record; the service must answer 201.

        Raises:
            CreateRejected: On any status other than 201.
        """
        response = self.request("POST", KEY_PATH, json_body={"name": name, "budget": budget})
        expect_status(response, 201, CreateRejected, f"Failed to create API key '{name}'")
        return decode_one(response, CreatedKey)

    def update_key(self, key_id: str, fields: dict[str, Any]) -> None:
        """``PUT /key?id=`` with the given writable fields; the service must answer 200.

        Raises:
            InvalidUsageError: If *fields* is empty or not writable.
            UpdateRejected: On any status other than 200.
        """
        payload = build_update_payload(fields)
        response = self.request("PUT", KEY_PATH, params={"id": key_id}, json_body=payload)
        expect_status(response, 200, UpdateRejected, f"Failed to update API key {key_id}")

    def update_key_budget(self, key_id: str, budget: int) -> None:
        """Set only the budget of a key record."""
        self.update_key(key_id, {"budget": budget})

    def delete_key(self, key_id: str) -> None:
        """``DELETE /key?id=`` -- the service must answer 200.

        Raises:
            DeleteRejected: On any status other than 200.
        """
        response = self.request("DELETE", KEY_PATH, params={"id": key_id})
        expect_status(response, 200, DeleteRejected, f"Failed to delete API key {key_id}")

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> httpx.Response:
        """Send one request and return the raw response, whatever its status.

        Raises:
            TransportError: On connection, DNS, protocol or timeout failures.
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

        try:
            response = self._client.request(method, path, params=params, json=json_body)
        except httpx.TransportError as exc:
            raise TransportError(f"{method} {self._config.base_url}{path} failed: {exc}") from exc

        debug(f"{method} {path} -> {response.status_code}")
        return response
