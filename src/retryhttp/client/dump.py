"""Wire-format dumps of requests and responses for diagnostics.

A dump is the HTTP/1.1 text a request or response would have on the wire:
start line, headers, a blank line, and (optionally) the body, with CRLF line
endings::

    POST /items?page=2 HTTP/1.1
    Host: api.example.com
    Content-Type: application/json

    {"key":"value"}

Serialisation failures raise :class:`~retryhttp.exceptions.DumpError`; the
client treats those as "nothing to log" and carries on with the request.
"""

from __future__ import annotations

from typing import Callable

import httpx

from retryhttp.exceptions import DumpError

CRLF = b"\r\n"

RequestDumper = Callable[[httpx.Request, bool], bytes]
ResponseDumper = Callable[[httpx.Response, bool], bytes]


def dump_request(request: httpx.Request, include_body: bool = False) -> bytes:
    """Serialise an outgoing request.

    The body is only included when it is already in memory; a streaming
    body would be consumed by the dump and is reported as a :class:`DumpError`.
    """
    target = request.url.raw_path.decode("ascii", errors="replace") or "/"
    lines = [f"{request.method} {target} HTTP/1.1".encode("ascii", errors="replace")]
    if "host" not in request.headers:
        lines.append(b"Host: " + request.url.netloc)
    lines.extend(_header_lines(request.headers))
    body = b""
    if include_body:
        try:
            body = request.content
        except httpx.RequestNotRead as exc:
            raise DumpError(f"dumping request: {exc}") from exc
    return CRLF.join(lines) + CRLF + CRLF + body


def dump_response(response: httpx.Response, include_body: bool = False) -> bytes:
    """Serialise a received response.

    Including the body reads the response stream; the content stays cached
    on the response, so later readers see the same bytes.
    """
    reason = response.reason_phrase
    status_line = f"{response.http_version} {response.status_code}"
    if reason:
        status_line = f"{status_line} {reason}"
    lines = [status_line.encode("ascii", errors="replace")]
    lines.extend(_header_lines(response.headers))
    body = b""
    if include_body:
        try:
            body = response.read()
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise DumpError(f"dumping response: {exc}") from exc
    return CRLF.join(lines) + CRLF + CRLF + body


def _header_lines(headers: httpx.Headers) -> list[bytes]:
    return [name + b": " + value for name, value in headers.raw]
