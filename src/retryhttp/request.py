"""Request builders.

Every builder returns an :class:`httpx.Request` ready for
:meth:`~retryhttp.client.Client.send_request`, with a
:class:`~retryhttp.context.RequestContext` attached. Build failures raise
:class:`~retryhttp.exceptions.RequestBuildError` before any network
activity happens.
"""

from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence, Union

import httpx
from pydantic import BaseModel

from retryhttp.context import RequestContext
from retryhttp.exceptions import RequestBuildError

HeaderValues = Union[str, Sequence[str]]


def new_request(
    method: str,
    url: str,
    context: Optional[RequestContext] = None,
) -> httpx.Request:
    """Build a request with no body and no extra headers."""
    return _build(method, url, [], None, context)


def new_request_with_headers(
    method: str,
    url: str,
    headers: Mapping[str, HeaderValues],
    context: Optional[RequestContext] = None,
) -> httpx.Request:
    """Build a request carrying *headers*.

    A header value may be a list, in which case the header is repeated once
    per value.
    """
    return _build(method, url, _header_items(headers), None, context)


def new_json_request(
    method: str,
    url: str,
    data: Any,
    context: Optional[RequestContext] = None,
) -> httpx.Request:
    """Build a request with a JSON body and ``Content-Type: application/json``.

    ``str`` and ``bytes`` payloads are sent exactly as given; anything else is
    JSON encoded. Pydantic models and dataclasses are dumped to plain data
    first.
    """
    return new_json_request_with_headers(method, url, data, {}, context)


def new_json_request_with_headers(
    method: str,
    url: str,
    data: Any,
    headers: Mapping[str, HeaderValues],
    context: Optional[RequestContext] = None,
) -> httpx.Request:
    """Like :func:`new_json_request`, adding *headers* after ``Content-Type``."""
    content = encode_payload(data)
    items = [("Content-Type", "application/json")] + _header_items(headers)
    return _build(method, url, items, content, context)


def add_authorization_bearer_header(request: httpx.Request, token: str) -> None:
    """Set ``Authorization: Bearer <token>`` on *request*, replacing any existing value."""
    request.headers["Authorization"] = f"Bearer {token}"


def encode_payload(data: Any) -> Optional[bytes]:
    """Encode a request payload.

    Raises:
        RequestBuildError: If *data* is not JSON serialisable.
    """
    if data is None:
        return None
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    try:
        return json.dumps(data, default=_json_default, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise RequestBuildError(f"encoding request payload: {exc}") from exc


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _header_items(headers: Mapping[str, HeaderValues]) -> list[tuple[str, str]]:
    items: list[tuple[str, str]] = []
    for name, value in headers.items():
        if isinstance(value, str):
            items.append((name, value))
        else:
            items.extend((name, v) for v in value)
    return items


def _build(
    method: str,
    url: str,
    headers: list[tuple[str, str]],
    content: Optional[bytes],
    context: Optional[RequestContext],
) -> httpx.Request:
    if not method:
        raise RequestBuildError("creating request: empty method")
    try:
        request = httpx.Request(method, url, headers=headers, content=content)
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise RequestBuildError(f"creating request: {exc}") from exc
    (context or RequestContext.background()).attach(request)
    return request
