"""HTTP client module for budgeteer.

Provides synchronous and asynchronous clients that wrap :mod:`httpx` with
bearer-token injection, status checking and typed decoding of the
service's key records.

Classes:
    :class:`BudgeteerClient` -- blocking client backed by :class:`httpx.Client`.
    :class:`AsyncBudgeteerClient` -- non-blocking client backed by :class:`httpx.AsyncClient`.

Both clients are context managers built from a
:class:`~budgeteer.models.ProviderConfig`; neither keeps module-level state.

Example::

    from budgeteer.client import BudgeteerClient

    with BudgeteerClient(config) as client:
        keys = client.list_key_summaries()
"""

from budgeteer.client.async_client import AsyncBudgeteerClient
from budgeteer.client.sync_client import BudgeteerClient

__all__ = ["BudgeteerClient", "AsyncBudgeteerClient"]
