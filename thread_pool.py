"""Fixed-size worker pool for accepted client sockets."""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ClientAddress = tuple[str, int]
ClientHandler = Callable[[object, ClientAddress], None]


@dataclass(slots=True)
class ClientJob:
    client_socket: object
    address: ClientAddress
    done: threading.Event | None = None


class ThreadPool:
    """Fixed-size thread pool pulling connections from a bounded queue."""

    def __init__(self, worker_count: int, queue_size: int, handler: ClientHandler) -> None:
        if worker_count <= 0:
            raise ValueError("worker_count must be positive")
        if queue_size <= 0:
            raise ValueError("queue_size must be positive")

        self._handler = handler
        self._queue: queue.Queue[ClientJob] = queue.Queue(maxsize=queue_size)
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []
        self._worker_count = worker_count
        self._drain_condition = threading.Condition(threading.Lock())
        self._shutdown_lock = threading.Lock()
        self._shutdown_started = False

    @property
    def worker_count(self) -> int:
        return self._worker_count

    @property
    def threads(self) -> tuple[threading.Thread, ...]:
        return tuple(self._threads)

    def start(self) -> None:
        for index in range(self._worker_count):
            worker = threading.Thread(
                target=self._worker_loop,
                name=f"page-worker-{index}",
                daemon=True,
            )
            self._threads.append(worker)
            worker.start()

    def submit(self, client_socket: object, address: ClientAddress) -> bool:
        """Queue a connection without waiting; False when stopped or full."""
        if self._stop_event.is_set():
            return False
        try:
            self._queue.put_nowait(ClientJob(client_socket, address))
        except queue.Full:
            return False
        return True

    def run(self, client_socket: object, address: ClientAddress) -> bool:
        """Queue a connection and block until a worker has finished it.

        Returns False only when the pool stops before the job is queued.
        A shutdown while waiting ends the wait early.
        """
        job = ClientJob(client_socket, address, done=threading.Event())
        while True:
            if self._stop_event.is_set():
                return False
            try:
                self._queue.put(job, timeout=0.2)
                break
            except queue.Full:
                continue

        while not job.done.wait(timeout=0.2):
            if self._stop_event.is_set():
                break
        return True

    def wait_for_drain(self, timeout: float | None = None) -> bool:
        """Wait until every queued and in-flight job has finished."""
        with self._drain_condition:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._is_drained_locked():
                if deadline is None:
                    self._drain_condition.wait(timeout=0.1)
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._drain_condition.wait(timeout=min(remaining, 0.1))
            return True

    def shutdown(self, *, graceful: bool = False, timeout: float | None = None) -> None:
        """Stop the workers and close every connection still waiting in the queue.

        With ``graceful`` the pool first lets workers finish queued jobs for
        up to ``timeout`` seconds.
        """
        with self._shutdown_lock:
            if self._shutdown_started:
                return
            self._shutdown_started = True

        if graceful:
            self.wait_for_drain(timeout=timeout)

        self._stop_event.set()
        dropped = self._discard_queued_jobs()
        if dropped:
            logger.warning("Closed %d queued connection(s) during shutdown", dropped)

        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join(timeout=1.0)

    def _discard_queued_jobs(self) -> int:
        dropped = 0
        while True:
            try:
                job = self._queue.get_nowait()
            except queue.Empty:
                return dropped
            try:
                close = getattr(job.client_socket, "close", None)
                if close is not None:
                    close()
            except OSError as exc:
                logger.warning("Failed to close queued connection from %s: %s", job.address[0], exc)
            finally:
                if job.done is not None:
                    job.done.set()
                self._job_finished()
            dropped += 1

    def _is_drained_locked(self) -> bool:
        return self._queue.unfinished_tasks == 0

    def _job_finished(self) -> None:
        self._queue.task_done()
        with self._drain_condition:
            self._drain_condition.notify_all()

    def _worker_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                job = self._queue.get(timeout=0.2)
            except queue.Empty:
                continue
            try:
                self._handler(job.client_socket, job.address)
            except Exception:
                logger.exception("Unhandled error in worker %s", threading.current_thread().name)
            finally:
                if job.done is not None:
                    job.done.set()
                self._job_finished()
