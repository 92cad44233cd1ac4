"""HTTP response model, builders and serializer."""

from __future__ import annotations

from dataclasses import dataclass, field

from page_store import Page
from utils import get_content_type

DEFAULT_VERSION = "1.1"

REASON_PHRASES: dict[int, str] = {
    200: "OK",
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    408: "Request Timeout",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


@dataclass(slots=True)
class HTTPResponse:
    version: str = DEFAULT_VERSION
    status_code: int = 200
    status_message: str = "OK"
    headers: list[str] = field(default_factory=list)
    body: str | bytes = ""

    def set_status(self, status_code: int, status_message: str | None = None) -> None:
        self.status_code = status_code
        self.status_message = status_message or REASON_PHRASES.get(status_code, "Unknown")

    def set_body(self, body: str | bytes) -> None:
        self.body = body

    def add_header(self, name: str, value: str | None = None) -> None:
        """Append a header line, either prebuilt or as a name/value pair."""
        if value is None:
            self.headers.append(name)
        else:
            self.headers.append(f"{name}: {value}")

    def body_bytes(self) -> bytes:
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    def to_bytes(self) -> bytes:
        """Serialize the response into wire format bytes.

        Nothing is appended after the body; no header is added implicitly.
        """
        lines = [f"HTTP/{self.version} {self.status_code} {self.status_message}"]
        lines.extend(self.headers)
        head = "".join(f"{line}\r\n" for line in lines) + "\r\n"
        return head.encode("iso-8859-1") + self.body_bytes()


def build_response(
    status_code: int,
    body: str | bytes = "",
    *,
    headers: list[str] | None = None,
    reason_phrase: str | None = None,
    version: str = DEFAULT_VERSION,
) -> HTTPResponse:
    return HTTPResponse(
        version=version,
        status_code=status_code,
        status_message=reason_phrase or REASON_PHRASES.get(status_code, "Unknown"),
        headers=list(headers or []),
        body=body,
    )


def with_content_headers(response: HTTPResponse, content_type: str) -> HTTPResponse:
    response.add_header("Content-Type", content_type)
    response.add_header("Content-Length", str(len(response.body_bytes())))
    return response


def build_page_response(page: Page, *, content_headers: bool = False) -> HTTPResponse:
    """Build the 200 response carrying a page's cached contents."""
    response = build_response(200, page.contents)
    if content_headers:
        content_type = get_content_type(page.path)
        if content_type.startswith("text/"):
            content_type = f"{content_type}; charset=utf-8"
        with_content_headers(response, content_type)
    return response


def error_response(status_code: int) -> HTTPResponse:
    response = build_response(status_code, REASON_PHRASES.get(status_code, "Error"))
    with_content_headers(response, "text/plain; charset=utf-8")
    response.add_header("Connection", "close")
    return response
