"""HTTP request model and parser."""

from dataclasses import dataclass, field

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")


class RequestParseError(ValueError):
    """Request parse error carrying an HTTP status code."""

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class HTTPRequest:
    method: str
    path: str
    version: str
    headers: list[str] = field(default_factory=list)
    body: str = ""

    @property
    def request_line(self) -> str:
        return self.headers[0] if self.headers else ""

    @classmethod
    def from_bytes(cls, raw: bytes) -> "HTTPRequest":
        """Parse raw request bytes into a structured request.

        Lines are collected up to the first empty line; when the blank line
        is missing (for example after truncation) every non-empty line is
        kept. The request line stays at ``headers[0]``. The body is never
        read.
        """
        text = raw.decode("utf-8", errors="replace")

        headers: list[str] = []
        for line in text.split("\r\n"):
            if not line:
                break
            headers.append(line)

        if not headers:
            raise RequestParseError("Missing request line")

        words = headers[0].split(" ")
        method = words[0]
        if method not in SUPPORTED_METHODS:
            raise RequestParseError(f"Unsupported method: {method}", status_code=405)

        if len(words) < 3:
            raise RequestParseError("Invalid request line")

        return cls(method=method, path=words[1], version=words[2], headers=headers)
