"""Unit tests for HTTP request parsing."""

import pytest

from request import HTTPRequest, RequestParseError


def test_parse_get_request_line_and_headers() -> None:
    raw = b"GET / HTTP/1.1\r\nHost: x\r\nUser-Agent: pytest\r\n\r\n"

    request = HTTPRequest.from_bytes(raw)

    assert request.method == "GET"
    assert request.path == "/"
    assert request.version == "HTTP/1.1"
    assert request.headers == ["GET / HTTP/1.1", "Host: x", "User-Agent: pytest"]
    assert request.request_line == "GET / HTTP/1.1"
    assert request.body == ""


@pytest.mark.parametrize("method", ["GET", "POST", "PUT", "DELETE"])
def test_supported_methods_are_accepted(method: str) -> None:
    request = HTTPRequest.from_bytes(f"{method} /item HTTP/1.0\r\n\r\n".encode("ascii"))

    assert request.method == method
    assert request.path == "/item"
    assert request.version == "HTTP/1.0"


def test_body_is_never_parsed() -> None:
    raw = (
        b"POST /submit HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"Content-Length: 9\r\n"
        b"\r\n"
        b"name=test"
    )

    request = HTTPRequest.from_bytes(raw)

    assert request.body == ""
    assert request.headers[-1] == "Content-Length: 9"


def test_lines_without_blank_terminator_are_all_kept() -> None:
    request = HTTPRequest.from_bytes(b"GET /a HTTP/1.1\r\nHost: x\r\nAccept: */*")

    assert request.headers == ["GET /a HTTP/1.1", "Host: x", "Accept: */*"]


def test_path_is_kept_verbatim() -> None:
    request = HTTPRequest.from_bytes(b"GET /Docs/Page.html?x=1 HTTP/1.1\r\n\r\n")

    assert request.path == "/Docs/Page.html?x=1"


def test_extra_request_line_tokens_are_ignored() -> None:
    request = HTTPRequest.from_bytes(b"GET / HTTP/1.1 trailing\r\n\r\n")

    assert request.version == "HTTP/1.1"


def test_unsupported_method_raises_405() -> None:
    with pytest.raises(RequestParseError, match="Unsupported method: PATCH") as exc_info:
        HTTPRequest.from_bytes(b"PATCH / HTTP/1.1\r\nHost: x\r\n\r\n")

    assert exc_info.value.status_code == 405


def test_method_match_is_case_sensitive() -> None:
    with pytest.raises(RequestParseError) as exc_info:
        HTTPRequest.from_bytes(b"get / HTTP/1.1\r\n\r\n")

    assert exc_info.value.status_code == 405


def test_empty_input_raises_missing_request_line() -> None:
    with pytest.raises(RequestParseError, match="Missing request line") as exc_info:
        HTTPRequest.from_bytes(b"")

    assert exc_info.value.status_code == 400


def test_short_request_line_raises_value_error() -> None:
    with pytest.raises(ValueError, match="Invalid request line"):
        HTTPRequest.from_bytes(b"GET /\r\n\r\n")


def test_invalid_utf8_is_replaced_not_rejected() -> None:
    request = HTTPRequest.from_bytes(b"GET /\xff HTTP/1.1\r\n\r\n")

    assert request.path == "/\ufffd"
