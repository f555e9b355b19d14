"""Exception hierarchy for budgeteer.

All exceptions inherit from :class:`BudgeteerError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`budgeteer.exit_codes`.
The top-level error handler in :func:`budgeteer.app.main` catches
``BudgeteerError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    BudgeteerError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- ConfigError         (exit 1)
    +-- TransportError      (exit 6)
    +-- DecodeError         (exit 7)
    +-- RemoteRejected      (exit 5)
        +-- CreateRejected
        +-- UpdateRejected
        +-- DeleteRejected

A missing remote record is not an exception: the reconciler reports drift
by returning a resource whose ``id`` is empty.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from budgeteer.exit_codes import (
    EXIT_DECODE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_REMOTE_REJECTED,
    EXIT_TRANSPORT_ERROR,
)

if TYPE_CHECKING:
    from budgeteer.models import ApiKeyResource


class BudgeteerError(Exception):
    """Base exception for all budgeteer errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`budgeteer.exit_codes`.

    When a lifecycle operation fails after the remote record's identifier
    became known (for example the follow-up read after a successful
    create), the reconciler attaches the partially converged resource as
    :attr:`resource` so that the host can still persist the identifier.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code
        self.resource: Optional[ApiKeyResource] = None


class InvalidUsageError(BudgeteerError):
    """Raised for invalid CLI arguments or an operation on an unidentified resource."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(BudgeteerError):
    """Raised for configuration problems (missing host, unresolvable credential, invalid JSON)."""

    exit_code = EXIT_GENERIC_FAILURE


class TransportError(BudgeteerError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_TRANSPORT_ERROR


class DecodeError(BudgeteerError):
    """Raised when a response body is not JSON or does not match the expected record shape."""

    exit_code = EXIT_DECODE_ERROR


class RemoteRejected(BudgeteerError):
    """Raised when the service answers with an HTTP status other than the expected one.

    Args:
        message: Human-readable error description.
        status: The HTTP status code returned by the service.
        body: A short excerpt of the response body, if any.
    """

    exit_code = EXIT_REMOTE_REJECTED

    def __init__(self, message: str, status: int, body: str = ""):
        full = f"{message} (HTTP {status})"
        if body:
            full = f"{full}: {body}"
        super().__init__(full)
        self.status = status
        self.body = body


class CreateRejected(RemoteRejected):
    """Raised when ``POST /key`` does not answer 201."""


class UpdateRejected(RemoteRejected):
    """Raised when ``PUT /key`` does not answer 200."""


class DeleteRejected(RemoteRejected):
    """Raised when ``DELETE /key`` does not answer 200."""
