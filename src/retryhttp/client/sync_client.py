"""Synchronous client: dump, send with retry, classify, decode.

This module provides :class:`Client`, the single entry point for sending
requests built by :mod:`retryhttp.request`. One call to
:meth:`Client.send_request` or :meth:`Client.send_request_and_decode` runs:

1. **Request dump** -- if a request dump logger is configured, the outgoing
   request is serialised (body optional) and handed to it.
2. **Send with retry** -- delegated to
   :class:`~retryhttp.client.sender.RetryingSender`.
3. **Response dump** -- same as (1) for the final response.
4. **Classification** -- a response with status >= 400, or no response at
   all, raises :class:`~retryhttp.exceptions.HTTPError`.
5. **Decoding** -- for :meth:`~Client.send_request_and_decode`, the JSON body
   is validated into the requested type.

Dump failures are never fatal: the logger is simply not called.

See Also:
    :mod:`retryhttp.client.response` for the classification rules.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar, overload

import httpx

from retryhttp.client.dump import RequestDumper, ResponseDumper, dump_request, dump_response
from retryhttp.client.response import (
    BodyReader,
    Decoder,
    classify_response,
    decode_json,
    decode_response,
    read_body,
)
from retryhttp.client.sender import RetryingSender, Sender
from retryhttp.exceptions import DumpError, HTTPError, ResponseReadError
from retryhttp.models import ClientConfig
from retryhttp.options import Option, build_config
from retryhttp.output import get_output

T = TypeVar("T")


class Client:
    """HTTP client with opt-in retries and structured errors.

    The configuration is frozen at construction, so one client can be
    shared between threads. Use it as a context manager (or call
    :meth:`close`) to release the connection pool it created; a
    caller-supplied ``http_client`` is never closed.

    Args:
        config: Client configuration. Defaults to ``ClientConfig()``.
        sender: Replacement for the object performing single attempts
            (anything with ``send(request, *, stream)``).
        body_reader: Replacement for reading a response body.
        decoder: Replacement for ``(content, into) -> value`` JSON decoding.
        request_dumper: Replacement for request wire dumps.
        response_dumper: Replacement for response wire dumps.
        sleep: Replacement for backoff waits.

    Example::

        with Client.from_options(with_max_retries(2), with_check_retry_policy(retry_on_eof)) as client:
            response, user = client.send_request_and_decode(request, User)
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        sender: Optional[Sender] = None,
        body_reader: BodyReader = read_body,
        decoder: Decoder = decode_json,
        request_dumper: RequestDumper = dump_request,
        response_dumper: ResponseDumper = dump_response,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._retrying = RetryingSender(self._config, sender=sender, sleep=sleep)
        self._owns_sender = sender is None and self._config.owns_http_client
        self._read_body = body_reader
        self._decoder = decoder
        self._request_dumper = request_dumper
        self._response_dumper = response_dumper

    @classmethod
    def from_options(cls, *options: Option, **collaborators: Any) -> Client:
        """Build a client from option functions (see :mod:`retryhttp.options`)."""
        return cls(build_config(*options), **collaborators)

    @property
    def config(self) -> ClientConfig:
        return self._config

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the connection pool if this client created it."""
        if self._owns_sender:
            self._retrying.close()

    # ------------------------------------------------------------------ #
    # Public send methods
    # ------------------------------------------------------------------ #

    def send_request(self, request: httpx.Request, *, stream: bool = False) -> httpx.Response:
        """Send *request* and return the response.

        Args:
            request: A request, typically from :mod:`retryhttp.request`.
            stream: Leave a successful response's body unread. The caller
                then owns the open stream and must close it.

        Returns:
            The final response. Unless *stream* is set its body is loaded.

        Raises:
            HTTPError: When no response was received, the status is >= 400,
                or (without *stream*) the body could not be read.
        """
        response = self._send(request)
        if response is not None and not stream:
            try:
                response.read()
            except httpx.HTTPError as exc:
                read_error = ResponseReadError.wrap(exc)
                raise HTTPError(
                    str(request.url),
                    response.status_code,
                    error=read_error,
                    response=response,
                ) from read_error
            finally:
                response.close()
        return response  # type: ignore[return-value]

    @overload
    def send_request_and_decode(
        self, request: httpx.Request, into: type[T]
    ) -> tuple[httpx.Response, T]: ...

    @overload
    def send_request_and_decode(
        self, request: httpx.Request, into: Any
    ) -> tuple[httpx.Response, Any]: ...

    def send_request_and_decode(
        self, request: httpx.Request, into: Any
    ) -> tuple[httpx.Response, Any]:
        """Send *request* and decode its JSON body into *into*.

        *into* may be a Pydantic model, a dataclass, a ``TypedDict`` or any
        type :class:`pydantic.TypeAdapter` understands (``dict``,
        ``list[int]``...).

        Returns:
            ``(response, value)``. The response body is read and closed.

        Raises:
            HTTPError: As for :meth:`send_request`, or carrying a
                :class:`~retryhttp.exceptions.ResponseDecodeError` and the
                response's status code when the body does not decode.
        """
        url = str(request.url)
        response = self._send(request)
        if response is None:
            return response, None  # type: ignore[return-value]
        value = decode_response(url, response, into, self._read_body, self._decoder)
        return response, value

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _send(self, request: httpx.Request) -> Optional[httpx.Response]:
        url = str(request.url)
        self._log_request_dump(request)
        outcome = self._retrying.send(request)
        if outcome.response is not None:
            lost_body = self._log_response_dump(outcome.response)
            if lost_body is not None:
                outcome.response.close()
                read_error = ResponseReadError.wrap(lost_body)
                error = HTTPError(
                    url, outcome.response.status_code, error=read_error, response=outcome.response
                )
                get_output().debug(str(error))
                raise error from read_error
        error = classify_response(url, outcome.response, outcome.error, self._read_body)
        if error is not None:
            get_output().debug(str(error))
            raise error
        return outcome.response

    def _log_request_dump(self, request: httpx.Request) -> None:
        logger = self._config.request_dump_logger
        if logger is None:
            return
        try:
            dump = self._request_dumper(request, self._config.dump_request_body)
        except DumpError as exc:
            get_output().debug(f"Request dump skipped: {exc}")
            return
        logger(dump)

    def _log_response_dump(self, response: httpx.Response) -> Optional[BaseException]:
        """Dump *response*; return the read failure if dumping consumed its body."""
        logger = self._config.response_dump_logger
        if logger is None:
            return None
        try:
            dump = self._response_dumper(response, self._config.dump_response_body)
        except DumpError as exc:
            get_output().debug(f"Response dump skipped: {exc}")
            if isinstance(exc.__cause__, httpx.HTTPError):
                return exc.__cause__
            return None
        logger(dump)
        return None


def new_client(*options: Option) -> Client:
    """Shorthand for :meth:`Client.from_options`."""
    return Client.from_options(*options)
