"""Tests for response checking and body excerpts."""

from __future__ import annotations

import httpx
import pytest

from budgeteer.client.response import body_excerpt, expect_status, expect_success
from budgeteer.exceptions import DeleteRejected, RemoteRejected


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("DELETE", "https://budget.test/key"), **kwargs)


class TestBodyExcerpt:
    def test_empty_body(self) -> None:
        assert body_excerpt(_response(404)) == ""

    @pytest.mark.parametrize("field", ["message", "error", "detail"])
    def test_prefers_message_fields(self, field: str) -> None:
        assert body_excerpt(_response(400, json={field: "budget must be numeric"})) == "budget must be numeric"

    def test_json_without_message_uses_text(self) -> None:
        assert body_excerpt(_response(400, content=b'{"code": 7}')) == '{"code": 7}'

    def test_plain_text_is_truncated(self) -> None:
        assert len(body_excerpt(_response(500, text="x" * 1000))) == 200


class TestExpectStatus:
    def test_matching_status_passes(self) -> None:
        expect_status(_response(200), 200, DeleteRejected, "Failed")

    def test_other_status_raises_given_type(self) -> None:
        with pytest.raises(DeleteRejected) as exc_info:
            expect_status(_response(204), 200, DeleteRejected, "Failed to delete API key 3")
        assert exc_info.value.status == 204
        assert str(exc_info.value) == "Failed to delete API key 3 (HTTP 204)"

    def test_expect_success_accepts_any_2xx(self) -> None:
        expect_success(_response(204), "Failed")
        with pytest.raises(RemoteRejected):
            expect_success(_response(302), "Failed")
