"""Tests for AuditRecord assembly."""

import json
from typing import Any

import pytest

from scribe.audit.assembly import (
    build_audit_record,
    build_url,
    parse_query,
    parse_request_body,
    parse_response_body,
)
from scribe.audit.capture import ResponseCapture
from scribe.audit.models.record import UNAVAILABLE, AuditRecord
from scribe.audit.redaction import REDACTED


async def _discard(message: dict[str, Any]) -> None:
    return None


async def completed_capture(*chunks: bytes, status: int = 200) -> ResponseCapture:
    capture = ResponseCapture(_discard)
    await capture({"type": "http.response.start", "status": status, "headers": []})
    for i, chunk in enumerate(chunks):
        await capture(
            {"type": "http.response.body", "body": chunk, "more_body": i < len(chunks) - 1}
        )
    if not chunks:
        await capture({"type": "http.response.body", "body": b""})
    return capture


def make_scope(
    method: str = "POST",
    path: str = "/api/folders",
    query_string: bytes = b"",
    headers: list[tuple[bytes, bytes]] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    scope: dict[str, Any] = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query_string,
        "headers": headers or [],
        "client": ("192.168.1.5", 50000),
    }
    scope.update(extra)
    return scope


class TestParsers:
    """Tests for body and query parsing helpers."""

    def test_json_request_body(self) -> None:
        assert parse_request_body(b'{"name": "x"}', "application/json; charset=utf-8") == {
            "name": "x"
        }

    def test_form_request_body(self) -> None:
        assert parse_request_body(b"name=x&tag=a&tag=b", "application/x-www-form-urlencoded") == {
            "name": "x",
            "tag": ["a", "b"],
        }

    @pytest.mark.parametrize(
        ("body", "content_type"),
        [(b"", "application/json"), (b"{broken", "application/json"), (b"\x89PNG", "image/png")],
    )
    def test_unparsed_request_body_is_empty_mapping(
        self, body: bytes, content_type: str
    ) -> None:
        assert parse_request_body(body, content_type) == {}

    def test_response_body_json_then_text_then_sentinel(self) -> None:
        assert parse_response_body(b'{"ok": true}') == {"ok": True}
        assert parse_response_body(b"plain text") == "plain text"
        assert parse_response_body(b"") == ""
        assert parse_response_body(None) == UNAVAILABLE

    def test_query_repeated_keys_become_lists(self) -> None:
        assert parse_query(b"a=1&b=2&a=3") == {"a": ["1", "3"], "b": "2"}

    def test_overly_nested_json_falls_back(self) -> None:
        deep = b"[" * 5000 + b"]" * 5000
        assert parse_request_body(deep, "application/json") == {}
        assert parse_response_body(deep) == deep.decode()

    def test_url_keeps_plain_query_as_sent(self) -> None:
        scope = make_scope(path="/api/items", query_string=b"q=a+b&page=2")
        assert build_url(scope) == "/api/items?q=a+b&page=2"

    def test_url_masks_sensitive_query_values(self) -> None:
        scope = make_scope(path="/api/items", query_string=b"page=2&token=abc")
        assert build_url(scope) == f"/api/items?page=2&token={REDACTED}"


class TestBuildAuditRecord:
    """Tests for build_audit_record()."""

    async def test_combines_request_and_response(self) -> None:
        scope = make_scope(
            query_string=b"parent=9",
            headers=[
                (b"content-type", b"application/json"),
                (b"user-agent", b"pytest-agent"),
                (b"x-user-id", b"7"),
            ],
        )
        capture = await completed_capture(b'{"id": ', b'"42"}', status=201)

        record = build_audit_record(scope, b'{"name": "Contracts"}', capture)

        assert isinstance(record, AuditRecord)
        assert record.method == "POST"
        assert record.url == "/api/folders?parent=9"
        assert record.query == {"parent": "9"}
        assert record.body == {"name": "Contracts"}
        assert record.user_id == "7"
        assert record.ip == "192.168.1.5"
        assert record.user_agent == "pytest-agent"
        assert record.status_code == 201
        assert record.duration_ms >= 0
        assert record.response_body == {"id": "42"}

    async def test_redacts_every_payload(self) -> None:
        scope = make_scope(
            query_string=b"token=abc&page=2",
            headers=[
                (b"content-type", b"application/json"),
                (b"authorization", b"Bearer xyz"),
            ],
        )
        capture = await completed_capture(b'{"user": {"accessToken": "t0k"}}')

        record = build_audit_record(scope, b'{"password": "hunter2", "name": "n"}', capture)

        assert record.headers["authorization"] == REDACTED
        assert record.query == {"token": REDACTED, "page": "2"}
        assert record.body == {"password": REDACTED, "name": "n"}
        assert record.response_body == {"user": {"accessToken": REDACTED}}
        line = record.to_json_line()
        for secret in ("xyz", "abc", "hunter2", "t0k"):
            assert secret not in line

    async def test_drops_configured_headers(self) -> None:
        scope = make_scope(headers=[(b"cookie", b"sid=1"), (b"accept", b"*/*")])
        record = build_audit_record(scope, None, await completed_capture())
        assert record.headers == {"accept": "*/*"}

    async def test_forwarded_for_takes_precedence(self) -> None:
        scope = make_scope(headers=[(b"x-forwarded-for", b"203.0.113.7, 10.0.0.1")])
        record = build_audit_record(scope, None, await completed_capture())
        assert record.ip == "203.0.113.7"

    async def test_user_id_from_request_state_wins(self) -> None:
        scope = make_scope(headers=[(b"x-user-id", b"header-user")], state={"user_id": 11})
        record = build_audit_record(scope, None, await completed_capture())
        assert record.user_id == "11"

    async def test_user_id_from_authenticated_user(self) -> None:
        class User:
            is_authenticated = True
            identity = "auth-user"

        scope = make_scope(user=User())
        record = build_audit_record(scope, None, await completed_capture())
        assert record.user_id == "auth-user"

    async def test_custom_user_id_header(self) -> None:
        scope = make_scope(headers=[(b"x-actor", b"55")])
        record = build_audit_record(scope, None, await completed_capture(), user_id_header="X-Actor")
        assert record.user_id == "55"

    async def test_unavailable_response_body(self) -> None:
        capture = await completed_capture(b"x")
        capture._available = False  # simulate a failed buffer

        record = build_audit_record(make_scope(), None, capture)

        assert record.response_body == UNAVAILABLE
        assert json.loads(record.to_json_line())["response_body"] == UNAVAILABLE

    async def test_deep_payload_still_serializes(self) -> None:
        deep = b"[" * 300 + b"]" * 300
        scope = make_scope(headers=[(b"content-type", b"application/json")])

        record = build_audit_record(scope, deep, await completed_capture(deep))

        line = json.loads(record.to_json_line())
        assert isinstance(line["body"], list)
        assert isinstance(line["response_body"], list)

    async def test_record_is_immutable(self) -> None:
        record = build_audit_record(make_scope(), None, await completed_capture())
        with pytest.raises(Exception):
            record.status_code = 500  # type: ignore[misc]
