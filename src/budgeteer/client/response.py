"""Response checking and typed decoding shared by both HTTP clients.

The service speaks JSON. Every body is validated against a Pydantic model
at decode time, so a body that is not JSON, or JSON of the wrong shape,
surfaces as :class:`~budgeteer.exceptions.DecodeError` rather than as a
``KeyError`` deep inside the reconciler.
"""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from budgeteer.exceptions import DecodeError, RemoteRejected

M = TypeVar("M", bound=BaseModel)

_EXCERPT_LENGTH = 200


def body_excerpt(response: httpx.Response) -> str:
    """Return a short human-readable excerpt of the response body.

    Prefers a ``message`` / ``error`` / ``detail`` field of a JSON object,
    falling back to the first characters of the raw text.
    """
    if not response.content:
        return ""
    try:
        detail = response.json()
    except ValueError:
        return response.text[:_EXCERPT_LENGTH]
    if isinstance(detail, dict):
        msg = detail.get("message") or detail.get("error") or detail.get("detail")
        if msg:
            return str(msg)[:_EXCERPT_LENGTH]
    return response.text[:_EXCERPT_LENGTH]


def expect_status(
    response: httpx.Response,
    expected: int,
    exc_type: type[RemoteRejected],
    message: str,
) -> None:
    """Raise *exc_type* unless the response carries exactly *expected*."""
    if response.status_code != expected:
        raise exc_type(message, status=response.status_code, body=body_excerpt(response))


def expect_success(response: httpx.Response, message: str) -> None:
    """Raise :class:`RemoteRejected` for any non-2xx status."""
    if not response.is_success:
        raise RemoteRejected(message, status=response.status_code, body=body_excerpt(response))


def decode_list(response: httpx.Response, model: type[M]) -> list[M]:
    """Decode a JSON array body into a list of *model* instances.

    Raises:
        DecodeError: If the body is not valid JSON or an element does not
            match *model*.
    """
    adapter: TypeAdapter[list[Any]] = TypeAdapter(list[model])  # type: ignore[valid-type]
    try:
        return adapter.validate_json(response.content)
    except ValidationError as exc:
        raise DecodeError(
            f"Unexpected response from {response.request.method} {response.request.url.path}: "
            f"{exc.error_count()} validation error(s): {_first_error(exc)}"
        ) from exc


def decode_one(response: httpx.Response, model: type[M]) -> M:
    """Decode a JSON object body into a *model* instance.

    Raises:
        DecodeError: If the body is not valid JSON or does not match *model*.
    """
    try:
        return model.model_validate_json(response.content)
    except ValidationError as exc:
        raise DecodeError(
            f"Unexpected response from {response.request.method} {response.request.url.path}: "
            f"{_first_error(exc)}"
        ) from exc


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err.get("loc", ())) or "body"
    return f"{loc}: {err.get('msg', 'invalid')}"
