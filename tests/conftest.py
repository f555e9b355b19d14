"""Shared test fixtures for budgeteer.

Provides an in-memory fake of the budget-tracking service served through
:class:`httpx.MockTransport`, clients wired to it, config isolation, and
output management. These fixtures are discovered by pytest and available
to all test modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

from budgeteer.client import BudgeteerClient
from budgeteer.models import ProviderConfig, RequestConfig
from budgeteer.output import OutputFormat, OutputManager, reset_output, set_output

BASE_URL = "https://budget.test"
TOKEN = "admin-token"


# ---------------------------------------------------------------------------
# Fake remote service
# ---------------------------------------------------------------------------


class FakeBudgetService:
    """In-memory stand-in for the service's ``/key`` and ``/keyView`` endpoints.

    Records are plain dicts keyed by integer id. Tests can:

    * pre-seed records with :meth:`add`,
    * hide records from the full listing via ``hidden_from_full``,
    * force a status for a method via ``fail``,
    * inspect every received request in ``requests``.
    """

    def __init__(self, token: str = TOKEN) -> None:
        self.token = token
        self.records: dict[int, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.hidden_from_full: set[int] = set()
        self.fail: dict[str, int] = {}
        self._next_id = 1

    def add(self, name: str, budget: float = -1, costs: float = 0.0, **extra: Any) -> dict[str, Any]:
        record = {
            "id": self._next_id,
            "name": name,
            "budget": budget,
            "costs": costs,
            "created_at": "2026-01-01T00:00:00Z",
            "last_used_at": None,
            "key": f"sk-{self._next_id:04d}",
        }
        record.update(extra)
        self.records[self._next_id] = record
        self._next_id += 1
        return record

    def calls(self, method: str, path: Optional[str] = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and (path is None or r.url.path == path)
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("authorization") != f"Bearer {self.token}":
            return httpx.Response(401, json={"error": "unauthorized"})
        if request.method in self.fail:
            return httpx.Response(self.fail[request.method], json={"error": "forced failure"})

        path = request.url.path
        if path == "/keyView" and request.method == "GET":
            return httpx.Response(200, json=[self._summary(r) for r in self.records.values()])
        if path == "/key":
            return self._key(request)
        return httpx.Response(404, json={"error": "no route"})

    def _key(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(
                200,
                json=[r for r in self.records.values() if r["id"] not in self.hidden_from_full],
            )
        if request.method == "POST":
            body = json.loads(request.content)
            record = self.add(body["name"], budget=body["budget"])
            return httpx.Response(
                201,
                json={"id": record["id"], "key": record["key"], "created_at": record["created_at"]},
            )

        key_id = int(request.url.params.get("id", "0"))
        if key_id not in self.records:
            return httpx.Response(404, json={"error": f"key {key_id} not found"})
        if request.method == "PUT":
            self.records[key_id].update(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})
        if request.method == "DELETE":
            del self.records[key_id]
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(405)

    @staticmethod
    def _summary(record: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in record.items() if k != "key"}


@pytest.fixture
def fake_service() -> FakeBudgetService:
    return FakeBudgetService()


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig(host=BASE_URL, api_key=TOKEN, request=RequestConfig(timeout=5))


@pytest.fixture
def client(provider_config: ProviderConfig, fake_service: FakeBudgetService):
    """An entered :class:`BudgeteerClient` talking to the fake service."""
    with BudgeteerClient(provider_config, transport=httpx.MockTransport(fake_service)) as c:
        yield c


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at ``tmp_path``, forces the XDG code path,
    and clears the ``BUDGETEER_*`` environment variables.
    """
    monkeypatch.setattr("budgeteer.config._uses_xdg", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("BUDGETEER_HOST", raising=False)
    monkeypatch.delenv("BUDGETEER_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time, which go stale once CliRunner restores the streams.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()
