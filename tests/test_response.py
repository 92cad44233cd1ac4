"""Unit tests for HTTP response building and serialization."""

from page_store import Page
from response import HTTPResponse, build_page_response, build_response, error_response


def test_page_response_is_bare_200_with_page_body() -> None:
    response = build_page_response(Page(name="/", path="index.html", contents="OK"))

    assert response.version == "1.1"
    assert response.status_code == 200
    assert response.status_message == "OK"
    assert response.headers == []
    assert response.to_bytes() == b"HTTP/1.1 200 OK\r\n\r\nOK"


def test_empty_page_serializes_head_only() -> None:
    response = build_page_response(Page(name="index.html", path="index.html"))

    assert response.to_bytes() == b"HTTP/1.1 200 OK\r\n\r\n"


def test_headers_are_serialized_in_order() -> None:
    response = HTTPResponse(body="hi")
    response.add_header("X-First: 1")
    response.add_header("X-Second", "2")

    assert response.to_bytes() == b"HTTP/1.1 200 OK\r\nX-First: 1\r\nX-Second: 2\r\n\r\nhi"


def test_mutators_update_status_and_body() -> None:
    response = HTTPResponse()
    response.set_status(404)
    response.set_body(b"<h1>gone</h1>")

    assert response.to_bytes() == b"HTTP/1.1 404 Not Found\r\n\r\n<h1>gone</h1>"

    response.set_status(299, "Custom")
    assert response.to_bytes().startswith(b"HTTP/1.1 299 Custom\r\n")


def test_body_is_utf8_encoded() -> None:
    response = build_response(200, "café")

    assert response.to_bytes().endswith("café".encode("utf-8"))


def test_page_response_with_content_headers() -> None:
    page = Page(name="/", path="docs/index.html", contents="<p>hi</p>")

    raw = build_page_response(page, content_headers=True).to_bytes()

    assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b"Content-Type: text/html; charset=utf-8\r\n" in raw
    assert b"Content-Length: 9\r\n" in raw
    assert raw.endswith(b"\r\n\r\n<p>hi</p>")


def test_error_response_sets_length_and_close() -> None:
    raw = error_response(405).to_bytes()

    assert raw.startswith(b"HTTP/1.1 405 Method Not Allowed\r\n")
    assert b"Content-Length: 18\r\n" in raw
    assert b"Connection: close\r\n" in raw
    assert raw.endswith(b"\r\n\r\nMethod Not Allowed")
