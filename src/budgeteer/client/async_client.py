"""Asynchronous client -- mirrors :class:`~budgeteer.client.sync_client.BudgeteerClient`.

This module provides :class:`AsyncBudgeteerClient`, the non-blocking
counterpart used by :class:`~budgeteer.reconciler.AsyncApiKeyReconciler`.
It wraps :class:`httpx.AsyncClient` with the same auth injection, error
mapping and typed decoding.

Cancellation is cooperative: when the task awaiting a request is
cancelled, httpx aborts the in-flight request and
:class:`asyncio.CancelledError` propagates to the caller untouched.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from budgeteer.client.response import decode_list, decode_one, expect_status, expect_success
from budgeteer.client.sync_client import (
    KEY_PATH,
    KEY_VIEW_PATH,
    build_headers,
    build_update_payload,
)
from budgeteer.exceptions import CreateRejected, DeleteRejected, TransportError, UpdateRejected
from budgeteer.models import CreatedKey, KeyRecord, KeySummary, ProviderConfig
from budgeteer.output import debug


class AsyncBudgeteerClient:
    """Asynchronous HTTP client for the key endpoints.

    Must be used as an async context manager.

    Args:
        config: Resolved provider configuration.
        transport: Optional async httpx transport, e.g. :class:`httpx.MockTransport`.

    Example::

        async with AsyncBudgeteerClient(config) as client:
            summaries = await client.list_key_summaries()
    """

    def __init__(
        self,
        config: ProviderConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> AsyncBudgeteerClient:
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            headers=build_headers(self._config),
            timeout=self._config.request.timeout,
            verify=self._config.request.verify_ssl,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def list_key_summaries(self) -> list[KeySummary]:
        response = await self.request("GET", KEY_VIEW_PATH)
        expect_success(response, "Failed to list API keys")
        return decode_list(response, KeySummary)

    async def list_full_keys(self) -> list[KeyRecord]:
        response = await self.request("GET", KEY_PATH)
        expect_success(response, "Failed to list API keys")
        return decode_list(response, KeyRecord)

    async def create_key(self, name: str, budget: int) -> CreatedKey:
        response = await self.request("POST", KEY_PATH, json_body={"name": name, "budget": budget})
        expect_status(response, 201, CreateRejected, f"Failed to create API key '{name}'")
        return decode_one(response, CreatedKey)

    async def update_key(self, key_id: str, fields: dict[str, Any]) -> None:
        payload = build_update_payload(fields)
        response = await self.request("PUT", KEY_PATH, params={"id": key_id}, json_body=payload)
        expect_status(response, 200, UpdateRejected, f"Failed to update API key {key_id}")

    async def update_key_budget(self, key_id: str, budget: int) -> None:
        await self.update_key(key_id, {"budget": budget})

    async def delete_key(self, key_id: str) -> None:
        response = await self.request("DELETE", KEY_PATH, params={"id": key_id})
        expect_status(response, 200, DeleteRejected, f"Failed to delete API key {key_id}")

    async def request(
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
        assert self._client is not None, "Client not initialised -- use as async context manager"

        try:
            response = await self._client.request(method, path, params=params, json=json_body)
        except httpx.TransportError as exc:
            raise TransportError(f"{method} {self._config.base_url}{path} failed: {exc}") from exc

        debug(f"{method} {path} -> {response.status_code}")
        return response
