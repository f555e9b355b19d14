"""Canonical Pydantic models shared across all budgeteer modules.

The models fall into three groups:

**Configuration models** -- serialised as JSON in the user's config directory
or resolved from the environment:
    :class:`RequestConfig`, :class:`StoredConfig`, and :class:`ProviderConfig`.

**Remote records** -- the shapes returned by the budget-tracking service,
validated at decode time so that a malformed body becomes a
:class:`~budgeteer.exceptions.DecodeError` instead of a stray ``KeyError``:
    :class:`KeySummary`, :class:`KeyRecord`, and :class:`CreatedKey`.

**Managed resource** -- the declarative record a host wants to exist:
    :class:`ApiKeyResource`.

All models use Pydantic v2. Remote record models ignore unknown keys so
that additive changes on the service side do not break decoding.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

UNLIMITED_BUDGET = -1
"""Budget sentinel meaning "no spending ceiling"."""


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP request settings applied to every call made by a client."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class StoredConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/budgeteer/config.json``.

    Only the *source* of the credential is stored, never the credential
    itself. See :func:`~budgeteer.config.resolve_credential` for the
    supported descriptors.
    """

    host: Optional[str] = Field(
        default=None, description="Base URL of the budget-tracking service"
    )
    api_key_source: Optional[str] = Field(
        default=None, description="Credential source: env:VAR, file:/path, prompt"
    )
    request: RequestConfig = Field(default_factory=RequestConfig)


class ProviderConfig(BaseModel):
    """Fully resolved connection settings handed to a client.

    Built by :func:`~budgeteer.config.resolve_provider_config` from CLI
    flags, environment variables and the stored config file.
    """

    host: str = Field(min_length=1, description="Base URL, e.g. https://budget.example.com")
    api_key: str = Field(repr=False, description="Bearer credential")
    request: RequestConfig = Field(default_factory=RequestConfig)

    @property
    def base_url(self) -> str:
        """The host without a trailing slash, ready for path concatenation."""
        return self.host.rstrip("/")


# --- Remote records ---


class KeySummary(BaseModel):
    """A key record as listed by ``GET /keyView`` (no secret)."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    budget: float = UNLIMITED_BUDGET
    costs: float = 0.0
    created_at: Optional[str] = None
    last_used_at: Optional[str] = None

    @property
    def is_unlimited(self) -> bool:
        return int(self.budget) == UNLIMITED_BUDGET


class KeyRecord(KeySummary):
    """A key record as listed by ``GET /key``, carrying the secret."""

    key: Optional[str] = Field(default=None, repr=False)


class CreatedKey(BaseModel):
    """The body of a ``201 Created`` answer to ``POST /key``.

    The service has been seen to return the secret either as ``key`` or as
    ``key_value``; both are accepted.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    key: Optional[str] = Field(
        default=None,
        repr=False,
        validation_alias=AliasChoices("key", "key_value"),
    )
    created_at: Optional[str] = None


# --- Managed resource ---


class ApiKeyResource(BaseModel):
    """The declarative API-key resource tracked by the reconciler.

    ``name`` and ``budget`` are desired values supplied by the host and the
    only fields ever written to the service. The remaining fields are
    computed: they are pulled from the service and never pushed.

    ``id`` is the persisted identifier. It is empty when the resource has
    not been created yet, or when a read found no matching remote record
    (drift); in both cases the host should treat the resource as absent.

    Example::

        desired = ApiKeyResource(name="svc-a", budget=1000)
        state = reconciler.create(desired)
        assert state.exists
    """

    id: str = ""
    name: str = Field(min_length=1)
    budget: int = UNLIMITED_BUDGET
    key_value: Optional[str] = Field(default=None, repr=False)
    costs: float = 0.0
    created_at: Optional[str] = None
    last_used_at: Optional[str] = None

    @property
    def exists(self) -> bool:
        """Whether a remote record is believed to exist for this resource."""
        return bool(self.id)

    @property
    def is_unlimited(self) -> bool:
        return self.budget == UNLIMITED_BUDGET

    def desired(self) -> dict[str, Any]:
        """Return the host-writable fields as a plain dict."""
        return {"name": self.name, "budget": self.budget}
