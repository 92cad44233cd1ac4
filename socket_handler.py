"""Low-level socket read/write utilities."""

from __future__ import annotations

import socket

from config import BUFFER_SIZE, DRAIN_LIMIT_BYTES, DRAIN_TIMEOUT_SECS, MAX_REQUEST_BYTES
from response import HTTPResponse


class ConnectionIOError(Exception):
    """Raised when a client connection fails while reading or writing."""


class ConnectionReadError(ConnectionIOError):
    """Raised when request bytes cannot be read from the socket."""


class SocketTimeoutError(ConnectionReadError):
    """Raised when a client times out while sending request bytes."""


class ConnectionWriteError(ConnectionIOError):
    """Raised when response bytes cannot be written to the socket."""


def read_request_head(
    client_socket: socket.socket,
    max_bytes: int = MAX_REQUEST_BYTES,
    chunk_size: int = BUFFER_SIZE,
) -> bytes:
    """Read request bytes until the blank line, EOF, or ``max_bytes``.

    Bytes past ``max_bytes`` are left unread, so an oversized request is
    truncated at exactly that bound.
    """
    if max_bytes <= 0:
        raise ValueError("max_bytes must be positive")

    buffer = bytearray()
    while len(buffer) < max_bytes:
        try:
            chunk = client_socket.recv(min(chunk_size, max_bytes - len(buffer)))
        except socket.timeout as exc:
            raise SocketTimeoutError("Timed out waiting for request bytes") from exc
        except OSError as exc:
            raise ConnectionReadError(f"Failed to read from connection: {exc}") from exc

        if not chunk:
            break

        buffer.extend(chunk)
        if b"\r\n\r\n" in buffer:
            break

    return bytes(buffer)


def write_http_response(client_socket: socket.socket, response: HTTPResponse) -> int:
    """Write the complete serialized response and return the byte count."""
    payload = response.to_bytes()
    try:
        client_socket.sendall(payload)
    except OSError as exc:
        raise ConnectionWriteError(f"Failed to write to connection: {exc}") from exc
    return len(payload)


def finish_connection(
    client_socket: socket.socket,
    *,
    drain_timeout: float = DRAIN_TIMEOUT_SECS,
    drain_limit: int = DRAIN_LIMIT_BYTES,
) -> None:
    """Half-close the socket and discard unread input before it is closed.

    Closing with unread bytes pending makes the kernel send a reset, which
    can destroy a response the peer has not consumed yet.
    """
    try:
        client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        return

    client_socket.settimeout(drain_timeout)
    drained = 0
    try:
        while drained < drain_limit:
            chunk = client_socket.recv(BUFFER_SIZE)
            if not chunk:
                return
            drained += len(chunk)
    except OSError:
        return
