"""Assembly of an AuditRecord from one ASGI request/response cycle."""

import json
from collections.abc import Iterable
from typing import Any
from urllib.parse import parse_qsl, urlencode

from starlette.datastructures import Headers, QueryParams
from starlette.types import Scope

from scribe.audit.capture import ResponseCapture
from scribe.audit.models.record import UNAVAILABLE, AuditRecord
from scribe.audit.redaction import REDACTED, is_sensitive_key, redact


def _collect(pairs: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """Fold key/value pairs into a dict; repeated keys become lists."""
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key not in result:
            result[key] = value
        elif isinstance(result[key], list):
            result[key].append(value)
        else:
            result[key] = [result[key], value]
    return result


def parse_query(query_string: bytes) -> dict[str, Any]:
    return _collect(QueryParams(query_string).multi_items())


def parse_request_body(body: bytes | None, content_type: str | None) -> Any:
    """Decode a request body the way the API would have parsed it.

    JSON bodies are decoded, urlencoded forms become a mapping. Anything
    else (uploads, plain text, malformed payloads) is recorded as `{}`.
    """
    if not body:
        return {}
    media_type = (content_type or "").split(";")[0].strip().lower()
    try:
        if media_type == "application/json" or media_type.endswith("+json"):
            return json.loads(body)
        if media_type == "application/x-www-form-urlencoded":
            return _collect(parse_qsl(body.decode("utf-8"), keep_blank_values=True))
    except (ValueError, RecursionError):
        return {}
    return {}


def parse_response_body(body: bytes | None) -> Any:
    """Parsed JSON when possible, else text, else the unavailable sentinel."""
    if body is None:
        return UNAVAILABLE
    text = body.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return text


def request_headers(headers: Headers, drop: Iterable[str] = ()) -> dict[str, str]:
    """Request headers as a dict, minus the dropped names.

    Repeated headers are joined with ", " as HTTP allows.
    """
    dropped = {name.lower() for name in drop}
    result: dict[str, str] = {}
    for key, value in headers.items():
        if key in dropped:
            continue
        result[key] = f"{result[key]}, {value}" if key in result else value
    return result


def client_ip(scope: Scope, headers: Headers) -> str | None:
    """First X-Forwarded-For hop, else the socket peer address."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    client = scope.get("client")
    return client[0] if client else None


def resolve_user_id(scope: Scope, headers: Headers, header_name: str) -> str | None:
    """Authenticated user id supplied by the authentication layer.

    Checked in order: `request.state.user_id`, an authenticated
    `scope["user"]` (Starlette AuthenticationMiddleware), then the
    configured header.
    """
    state = scope.get("state") or {}
    user_id = state.get("user_id") if isinstance(state, dict) else None
    if user_id is not None:
        return str(user_id)

    user = scope.get("user")
    if user is not None and getattr(user, "is_authenticated", False):
        identity = getattr(user, "identity", None)
        if identity:
            return str(identity)

    return headers.get(header_name) or None


def build_url(scope: Scope) -> str:
    """Path plus query string as sent, unless a parameter name is sensitive.

    Sensitive parameters have their values masked and the query string is
    re-encoded.
    """
    path = scope.get("path", "")
    query = scope.get("query_string", b"").decode("latin-1")
    if not query:
        return path
    pairs = parse_qsl(query, keep_blank_values=True)
    if not any(is_sensitive_key(key) for key, _ in pairs):
        return f"{path}?{query}"
    masked = [(key, REDACTED if is_sensitive_key(key) else value) for key, value in pairs]
    return f"{path}?{urlencode(masked, safe='*')}"


def build_audit_record(
    scope: Scope,
    request_body: bytes | None,
    response: ResponseCapture,
    *,
    user_id_header: str = "X-User-ID",
    drop_headers: Iterable[str] = ("cookie",),
) -> AuditRecord:
    """Combine request metadata, captured bodies and timing into a record.

    Every payload that can carry a secret (body, query, headers, response)
    is redacted here, before the record exists.

    Args:
        scope: ASGI connection scope of the request
        request_body: Bytes the handler read from the request (None if lost)
        response: Completed response capture for this request
        user_id_header: Header carrying the user id when no auth context is set
        drop_headers: Header names never recorded
    """
    headers = Headers(scope=scope)
    return AuditRecord(
        method=scope.get("method", ""),
        url=build_url(scope),
        query=redact(parse_query(scope.get("query_string", b""))),
        body=redact(parse_request_body(request_body, headers.get("content-type"))),
        headers=redact(request_headers(headers, drop_headers)),
        user_id=resolve_user_id(scope, headers, user_id_header),
        ip=client_ip(scope, headers),
        user_agent=headers.get("user-agent"),
        status_code=response.status_code or 0,
        duration_ms=response.duration_ms,
        response_body=redact(parse_response_body(response.take_body())),
    )
