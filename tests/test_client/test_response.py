"""Tests for response classification and decoding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

import httpx
import pytest
from pydantic import BaseModel

from retryhttp.client.response import classify_response, decode_json, decode_response, read_body
from retryhttp.exceptions import HTTPError, ResponseDecodeError, ResponseReadError

URL = "https://api.example.com/items"


class Item(BaseModel):
    key: str


@dataclass
class Point:
    x: int
    y: int


class _FailingStream(httpx.SyncByteStream):
    def __iter__(self) -> Iterator[bytes]:
        yield b"partial"
        raise httpx.ReadError("connection lost")


def _streamed(status: int, body: bytes) -> httpx.Response:
    return httpx.Response(status, stream=httpx.ByteStream(body))


# ---------------------------------------------------------------------------
# read_body
# ---------------------------------------------------------------------------


class TestReadBody:
    def test_reads_and_closes(self) -> None:
        response = _streamed(200, b"hello")
        assert read_body(response) == b"hello"
        assert response.is_closed

    def test_cached_content(self) -> None:
        response = _streamed(200, b"hello")
        response.read()
        assert read_body(response) == b"hello"

    def test_closed_unread_stream_reads_empty(self) -> None:
        response = _streamed(500, b"never read")
        response.close()
        assert read_body(response) == b""

    def test_read_failure_propagates(self) -> None:
        response = httpx.Response(500, stream=_FailingStream())
        with pytest.raises(httpx.ReadError):
            read_body(response)
        assert response.is_closed


# ---------------------------------------------------------------------------
# classify_response
# ---------------------------------------------------------------------------


class TestClassifyResponse:
    def test_success(self) -> None:
        assert classify_response(URL, _streamed(200, b"ok"), None) is None

    def test_redirect_status_is_success(self) -> None:
        assert classify_response(URL, _streamed(304, b""), None) is None

    def test_success_alongside_error(self) -> None:
        assert classify_response(URL, _streamed(200, b"ok"), ValueError("x")) is None

    def test_error_status_captures_body(self) -> None:
        response = _streamed(404, b'{"detail":"missing"}')
        err = classify_response(URL, response, None)
        assert isinstance(err, HTTPError)
        assert err.status_code == 404
        assert err.body == '{"detail":"missing"}'
        assert err.error is None
        assert err.response is response

    def test_error_status_keeps_policy_error(self) -> None:
        cause = ValueError("policy says no")
        err = classify_response(URL, _streamed(500, b""), cause)
        assert err is not None
        assert err.status_code == 500
        assert err.error is cause

    def test_unreadable_error_body(self) -> None:
        response = httpx.Response(502, stream=_FailingStream())
        err = classify_response(URL, response, ValueError("ignored"))
        assert err is not None
        assert err.status_code == 502
        assert err.body == ""
        assert isinstance(err.error, ResponseReadError)
        assert "parsing response" in str(err)

    def test_transport_error(self) -> None:
        cause = httpx.ConnectError("connection refused")
        err = classify_response(URL, None, cause)
        assert err is not None
        assert err.status_code == 0
        assert err.error is cause
        assert "httpStatus: [ no status ]" in str(err)

    def test_classifying_twice_does_not_raise(self) -> None:
        response = _streamed(500, b"down")
        first = classify_response(URL, response, None)
        second = classify_response(URL, response, None)
        assert first is not None and second is not None
        assert first.body == second.body == "down"

    def test_nothing(self) -> None:
        assert classify_response(URL, None, None) is None

    def test_custom_body_reader(self) -> None:
        err = classify_response(URL, _streamed(500, b"real"), None, read_body=lambda r: b"stub")
        assert err is not None
        assert err.body == "stub"


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class TestDecode:
    def test_model(self) -> None:
        assert decode_json(b'{"key":"value"}', Item) == Item(key="value")

    def test_dict(self) -> None:
        assert decode_json(b'{"key":"value"}', dict) == {"key": "value"}

    def test_dataclass_list(self) -> None:
        assert decode_json(b'[{"x":1,"y":2}]', list[Point]) == [Point(1, 2)]

    def test_decode_response(self) -> None:
        response = _streamed(200, b'{"key":"value"}')
        item = decode_response(URL, response, Item)
        assert item.key == "value"
        assert response.is_closed

    def test_invalid_json(self) -> None:
        response = _streamed(200, b"<html>")
        with pytest.raises(HTTPError) as exc_info:
            decode_response(URL, response, Item)
        err = exc_info.value
        assert err.status_code == 200
        assert isinstance(err.error, ResponseDecodeError)
        assert "decoding response" in str(err)
        assert err.exit_code == 7

    def test_schema_mismatch(self) -> None:
        response = _streamed(201, b'{"other":1}')
        with pytest.raises(HTTPError) as exc_info:
            decode_response(URL, response, Item)
        assert exc_info.value.status_code == 201
        assert isinstance(exc_info.value.error, ResponseDecodeError)

    def test_custom_decoder(self) -> None:
        response = _streamed(200, b"a,b")
        value = decode_response(
            URL, response, list, decoder=lambda content, into: into(content.decode().split(","))
        )
        assert value == ["a", "b"]
