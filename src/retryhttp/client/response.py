"""Response classification and decoding.

:func:`classify_response` turns the final outcome of a logical call into
either ``None`` (success) or an :class:`~retryhttp.exceptions.HTTPError`.
:func:`decode_response` loads a successful JSON body into a caller-chosen
type via :class:`pydantic.TypeAdapter`.

Both functions take their I/O collaborators (:data:`BodyReader`,
:data:`Decoder`) as arguments so the client can substitute them.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Callable, Optional, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from retryhttp.exceptions import HTTPError, ResponseDecodeError, ResponseReadError

T = TypeVar("T")

BodyReader = Callable[[httpx.Response], bytes]
Decoder = Callable[[bytes, Any], Any]


def read_body(response: httpx.Response) -> bytes:
    """Read the whole body and close the response.

    A body that was already loaded is returned from the response's cache;
    one whose stream was closed or consumed without being loaded reads as
    empty. Network failures while reading propagate.
    """
    try:
        return response.read()
    except (httpx.StreamConsumed, httpx.StreamClosed):
        return b""
    finally:
        response.close()


def decode_json(content: bytes, into: Any) -> Any:
    """Validate JSON *content* against *into* (a model, dataclass, or any type)."""
    return _adapter(into).validate_json(content)


@lru_cache(maxsize=128)
def _adapter(into: Any) -> TypeAdapter[Any]:
    return TypeAdapter(into)


def classify_response(
    url: str,
    response: Optional[httpx.Response],
    error: Optional[BaseException],
    read_body: BodyReader = read_body,
) -> Optional[HTTPError]:
    """Classify the final outcome of a logical call.

    * A response with status >= 400 yields an error carrying its status and
      full body. If the body cannot be read the read failure is reported
      instead of *error*.
    * A response with status < 400 is a success, even alongside *error*.
    * No response and an *error* yields an error with status ``0``.
    * Neither yields ``None``.
    """
    if response is not None:
        if response.status_code >= 400:
            try:
                body = read_body(response)
            except httpx.HTTPError as exc:
                return HTTPError(
                    url,
                    response.status_code,
                    error=ResponseReadError.wrap(exc),
                    response=response,
                )
            return HTTPError(
                url,
                response.status_code,
                body=body.decode(response.encoding or "utf-8", errors="replace"),
                error=error,
                response=response,
            )
        return None
    if error is not None:
        return HTTPError(url, error=error)
    return None


def decode_response(
    url: str,
    response: httpx.Response,
    into: Any,
    read_body: BodyReader = read_body,
    decoder: Decoder = decode_json,
) -> Any:
    """Read and decode a successful response body into *into*.

    Raises:
        HTTPError: Carrying the response's status code and a
            :class:`~retryhttp.exceptions.ResponseDecodeError`, if the body
            cannot be read or does not validate.
    """
    try:
        return decoder(read_body(response), into)
    except (httpx.HTTPError, ValidationError, ValueError) as exc:
        decode_error = ResponseDecodeError.wrap(exc)
        raise HTTPError(
            url,
            response.status_code,
            error=decode_error,
            response=response,
        ) from decode_error
