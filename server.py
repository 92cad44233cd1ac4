"""Static page server entry point and connection lifecycle orchestration."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import signal
import socket
import sys
import threading
import time

from config import (
    ACCEPT_POLL_SECS,
    CONFIG_PATH,
    DISPATCH_MODES,
    HOST,
    LOG_FORMAT,
    LOG_FORMATS,
    MAX_PORT,
    MAX_REQUEST_BYTES,
    MIN_PORT,
    PORT,
    REQUEST_QUEUE_SIZE,
    SHUTDOWN_DRAIN_SECS,
    SOCKET_TIMEOUT_SECS,
    WORKER_COUNT,
    ConfigError,
    ServerSettings,
    load_settings,
)
from error_policy import Disposition, ErrorKind, ErrorPolicy
from page_store import FilesystemError, PageStore
from request import HTTPRequest, RequestParseError
from response import HTTPResponse, build_page_response, error_response
from router import NoMatchPolicy, Router
from socket_handler import (
    ConnectionIOError,
    ConnectionReadError,
    ConnectionWriteError,
    SocketTimeoutError,
    finish_connection,
    read_request_head,
    write_http_response,
)
from thread_pool import ThreadPool

logger = logging.getLogger(__name__)
banner_logger = logging.getLogger(f"{__name__}.banner")


class BindError(OSError):
    """Raised when the listening socket cannot be created or bound."""


class AcceptError(OSError):
    """Raised when accepting an incoming connection fails."""


class HTTPServer:
    def __init__(
        self,
        store: PageStore,
        host: str = HOST,
        port: int = PORT,
        worker_count: int = WORKER_COUNT,
        request_queue_size: int = REQUEST_QUEUE_SIZE,
        *,
        dispatch: str = "queued",
        no_match: NoMatchPolicy | str = NoMatchPolicy.FALLBACK,
        error_policy: ErrorPolicy | None = None,
        max_request_bytes: int = MAX_REQUEST_BYTES,
        socket_timeout_secs: float = SOCKET_TIMEOUT_SECS,
        content_headers: bool = False,
        log_format: str = LOG_FORMAT,
        shutdown_drain_secs: float = SHUTDOWN_DRAIN_SECS,
    ) -> None:
        if dispatch not in DISPATCH_MODES:
            raise ValueError(f"Unsupported dispatch mode: {dispatch}")

        self.host = host
        self.port = port
        self.worker_count = worker_count
        self.request_queue_size = request_queue_size
        self.dispatch = dispatch
        self.router = Router(store, NoMatchPolicy(no_match))
        self.error_policy = error_policy or ErrorPolicy.hardened()
        self.max_request_bytes = max_request_bytes
        self.socket_timeout_secs = socket_timeout_secs
        self.content_headers = content_headers
        self.log_format = log_format
        self.shutdown_drain_secs = shutdown_drain_secs

        self._pool: ThreadPool | None = None
        self._running = False
        self._fatal_error: BaseException | None = None
        self._fatal_lock = threading.Lock()
        self._reload_lock = threading.Lock()
        self._reload_requested = threading.Event()

    @classmethod
    def from_settings(cls, settings: ServerSettings, store: PageStore | None = None) -> "HTTPServer":
        if store is None:
            store = PageStore.load(settings.web_root, settings.pages)
        return cls(
            store,
            host=settings.host,
            port=settings.port,
            worker_count=settings.thread_count,
            request_queue_size=settings.queue_size,
            dispatch=settings.dispatch,
            no_match=settings.no_match,
            error_policy=settings.error_policy,
            max_request_bytes=settings.max_request_bytes,
            socket_timeout_secs=settings.socket_timeout_secs,
            content_headers=settings.content_headers,
            log_format=settings.log_format,
            shutdown_drain_secs=settings.shutdown_drain_secs,
        )

    @property
    def pages(self) -> PageStore:
        return self.router.store

    def reload_pages(self) -> PageStore:
        """Re-read page files and swap in a new routing table."""
        with self._reload_lock:
            current = self.router
            store = current.store.reload()
            self.router = Router(store, current.no_match)
        logger.info("Reloaded %d page(s) from %s", len(store), store.web_root)
        return store

    def request_reload(self) -> None:
        """Ask the accept loop to reload pages; safe to call from a signal handler."""
        self._reload_requested.set()

    def _apply_requested_reload(self) -> None:
        self._reload_requested.clear()
        try:
            self.reload_pages()
        except FilesystemError as exc:
            logger.error("Page reload failed, keeping previous pages: %s", exc)

    def start(self) -> None:
        """Bind, accept until stopped, and re-raise any fatal connection error."""
        self._running = True
        try:
            server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as exc:
            self._running = False
            raise BindError(f"Failed to create listening socket: {exc}") from exc

        with server_socket:
            try:
                server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                server_socket.bind((self.host, self.port))
                server_socket.listen(128)
            except OSError as exc:
                self._running = False
                raise BindError(f"Failed to bind to port {self.port}: {exc}") from exc

            server_socket.settimeout(ACCEPT_POLL_SECS)
            self._pool = ThreadPool(
                worker_count=self.worker_count,
                queue_size=self.request_queue_size,
                handler=self._handle_client,
            )
            self._pool.start()
            self.port = server_socket.getsockname()[1]
            logger.info("Listening on %s:%s (%s dispatch)", self.host, self.port, self.dispatch)

            try:
                self._accept_loop(server_socket)
            finally:
                self._running = False
                self._pool.shutdown(
                    graceful=self._fatal_error is None,
                    timeout=self.shutdown_drain_secs,
                )
                self._pool = None

        if self._fatal_error is not None:
            raise self._fatal_error

    def stop(self) -> None:
        self._running = False

    def _accept_loop(self, server_socket: socket.socket) -> None:
        while self._running:
            if self._reload_requested.is_set():
                self._apply_requested_reload()
            try:
                client_socket, address = server_socket.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if not self._running:
                    break
                raise AcceptError(f"Failed to accept incoming connection: {exc}") from exc

            self._dispatch_client(client_socket, address)

    def _dispatch_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        pool = self._pool
        if pool is None:
            client_socket.close()
            return

        if self.dispatch == "serial":
            if not pool.run(client_socket, address):
                client_socket.close()
            return

        if not pool.submit(client_socket, address):
            self._send_queue_full_response(client_socket, address)

    def _send_queue_full_response(
        self,
        client_socket: socket.socket,
        address: tuple[str, int],
    ) -> None:
        with client_socket:
            started_at = time.perf_counter()
            client_socket.settimeout(self.socket_timeout_secs)
            response = error_response(503)
            try:
                bytes_sent = write_http_response(client_socket, response)
            except ConnectionWriteError as exc:
                logger.warning("Failed to send 503 to %s: %s", address[0], exc)
                return
            finish_connection(client_socket)
            self._record_and_log(
                address=address,
                method="-",
                path="-",
                response=response,
                bytes_in=0,
                bytes_out=bytes_sent,
                started_at=started_at,
            )

    def _handle_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        with client_socket:
            started_at = time.perf_counter()
            client_socket.settimeout(self.socket_timeout_secs)

            try:
                raw_request = read_request_head(client_socket, self.max_request_bytes)
            except SocketTimeoutError as exc:
                self._handle_failure(ErrorKind.TIMEOUT, exc, client_socket, address, started_at, 408)
                return
            except ConnectionReadError as exc:
                self._handle_failure(ErrorKind.IO, exc, client_socket, address, started_at)
                return

            if not raw_request:
                exc = RequestParseError("Missing request line: connection sent no bytes")
                self._handle_failure(ErrorKind.EMPTY, exc, client_socket, address, started_at)
                return

            try:
                request = HTTPRequest.from_bytes(raw_request)
            except RequestParseError as exc:
                self._handle_failure(
                    ErrorKind.PARSE,
                    exc,
                    client_socket,
                    address,
                    started_at,
                    exc.status_code,
                )
                return

            page = self.router.resolve(request.path)
            if page is None:
                response = error_response(404)
            else:
                response = build_page_response(page, content_headers=self.content_headers)

            try:
                bytes_sent = write_http_response(client_socket, response)
            except ConnectionWriteError as exc:
                self._handle_failure(ErrorKind.IO, exc, client_socket, address, started_at)
                return

            finish_connection(client_socket)
            self._record_and_log(
                address=address,
                method=request.method,
                path=request.path,
                response=response,
                bytes_in=len(raw_request),
                bytes_out=bytes_sent,
                started_at=started_at,
            )

    def _handle_failure(
        self,
        kind: ErrorKind,
        exc: Exception,
        client_socket: socket.socket,
        address: tuple[str, int],
        started_at: float,
        status_code: int = 400,
    ) -> None:
        disposition = self.error_policy.disposition_for(kind)
        if disposition is Disposition.FATAL:
            logger.error("Fatal %s error on connection from %s: %s", kind.value, address[0], exc)
            self._fail(exc)
            return

        if disposition is Disposition.DROP:
            logger.warning("Dropped connection from %s after %s error: %s", address[0], kind.value, exc)
            return

        response = error_response(status_code)
        try:
            bytes_sent = write_http_response(client_socket, response)
        except ConnectionWriteError as write_exc:
            self._handle_failure(ErrorKind.IO, write_exc, client_socket, address, started_at)
            return

        finish_connection(client_socket)
        self._record_and_log(
            address=address,
            method="-",
            path="-",
            response=response,
            bytes_in=0,
            bytes_out=bytes_sent,
            started_at=started_at,
        )

    def _fail(self, exc: BaseException) -> None:
        with self._fatal_lock:
            if self._fatal_error is None:
                self._fatal_error = exc
        self._running = False

    def _record_and_log(
        self,
        *,
        address: tuple[str, int],
        method: str,
        path: str,
        response: HTTPResponse,
        bytes_in: int,
        bytes_out: int,
        started_at: float,
    ) -> None:
        duration_ms = (time.perf_counter() - started_at) * 1000
        event = {
            "client": address[0],
            "method": method,
            "path": path,
            "status": response.status_code,
            "dispatch": self.dispatch,
            "bytes_in": bytes_in,
            "bytes_out": bytes_out,
            "latency_ms": round(duration_ms, 3),
        }
        if self.log_format == "json":
            logger.info(json.dumps(event, sort_keys=True))
            return

        logger.info(
            "client=%s method=%s path=%s status=%s dispatch=%s bytes_in=%s bytes_out=%s duration_ms=%.2f",
            event["client"],
            event["method"],
            event["path"],
            event["status"],
            event["dispatch"],
            event["bytes_in"],
            event["bytes_out"],
            duration_ms,
        )


def log_banner(settings: ServerSettings, store: PageStore) -> None:
    banner_logger.info("================ CONFIG ================")
    banner_logger.info("Verbose Output:  %s", settings.verbose)
    banner_logger.info("Thread Count:    %s", settings.thread_count)
    banner_logger.info("Port:            %s", settings.port)
    banner_logger.info("Web Root:        %s", settings.web_root)
    banner_logger.info("Page Count:      %s", len(store))
    banner_logger.info("Dispatch:        %s", settings.dispatch)
    banner_logger.info("Error Policy:    %s", settings.error_policy.name)
    banner_logger.info("========================================")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve preloaded static pages over HTTP")
    parser.add_argument("--config", default=CONFIG_PATH)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--log-format", choices=LOG_FORMATS, default=None)
    return parser.parse_args(argv)


def _apply_overrides(settings: ServerSettings, args: argparse.Namespace) -> ServerSettings:
    if args.port is not None:
        if not MIN_PORT <= args.port <= MAX_PORT:
            raise ConfigError(f"Invalid port, must be a number between {MIN_PORT} and {MAX_PORT}")
        settings = dataclasses.replace(settings, port=args.port)
    if args.log_format is not None:
        settings = dataclasses.replace(settings, log_format=args.log_format)
    return settings


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    try:
        settings = _apply_overrides(load_settings(args.config), args)
        # verbose gates activity logs only; the banner is always shown
        banner_logger.setLevel(logging.INFO)
        if not settings.verbose:
            logging.getLogger().setLevel(logging.WARNING)
        store = PageStore.load(settings.web_root, settings.pages)
    except (ConfigError, FilesystemError) as exc:
        logger.error("Startup failed: %s", exc)
        return 1

    server = HTTPServer.from_settings(settings, store=store)
    log_banner(settings, store)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, lambda _signum, _frame: server.request_reload())

    try:
        server.start()
    except KeyboardInterrupt:
        server.stop()
    except (BindError, AcceptError) as exc:
        logger.error("%s", exc)
        return 1
    except (RequestParseError, ConnectionIOError) as exc:
        logger.error("Server stopped after fatal connection error: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
