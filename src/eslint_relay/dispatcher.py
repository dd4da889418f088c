# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Route job requests to the worker and correlate their responses."""

from __future__ import annotations

import itertools
import logging
import threading
from concurrent.futures import Future
from typing import Any

from pydantic import ValidationError

from . import protocol
from .errors import RelayError, WorkerCrashError, WorkerProtocolError, error_from_wire
from .jobs import JobResponse, JobSpec
from .supervisor import WorkerSupervisor

LOGGER = logging.getLogger(__name__)


class JobDispatcher:
    """Send :class:`JobSpec` requests to the worker and hand back futures.

    Each request gets a monotonically increasing correlation id. Responses are
    matched by id only, so several jobs can be in flight at once. When the
    worker dies every pending future fails with :class:`WorkerCrashError` and a
    restart is scheduled; the next :meth:`send_job` reaches a fresh worker.
    """

    def __init__(self, supervisor: WorkerSupervisor | None = None, *, auto_restart: bool = True) -> None:
        self._supervisor = supervisor or WorkerSupervisor()
        self._supervisor.set_handlers(on_message=self._handle_message, on_crash=self._handle_crash)
        self._auto_restart = auto_restart
        self._pending: dict[int, Future[JobResponse]] = {}
        self._pending_lock = threading.Lock()
        self._ids = itertools.count(1)
        self._restart_thread: threading.Thread | None = None

    @property
    def supervisor(self) -> WorkerSupervisor:
        return self._supervisor

    @property
    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def start(self) -> None:
        """Pre-start the worker so the first job does not pay the spawn cost."""

        self._supervisor.start()

    def kill(self, force: bool = False) -> None:
        """Tear the worker down; still-pending futures are left unresolved."""

        self._supervisor.kill(force)

    def restart(self) -> None:
        """Restart the worker, failing every job still waiting on the old one."""

        with self._pending_lock:
            pending = list(self._pending.values())
            self._pending.clear()
        self._supervisor.restart()
        for future in pending:
            if not future.done():
                future.set_exception(WorkerCrashError("Worker was restarted before answering"))

    def send_job(self, spec: JobSpec) -> Future[JobResponse]:
        """Submit ``spec`` and return a future resolving to its :class:`JobResponse`.

        The future fails with :class:`WorkerCrashError` if the worker dies before
        answering, or with the error the worker reported for the job.

        Raises:
            WorkerProtocolError: If the worker cannot be started.
        """

        self._supervisor.start()
        request_id = next(self._ids)
        future: Future[JobResponse] = Future()
        future.set_running_or_notify_cancel()
        with self._pending_lock:
            self._pending[request_id] = future
            self._supervisor.mark_busy()
        try:
            self._supervisor.send({"id": request_id, "op": protocol.OP_JOB, "job": spec.to_wire()})
        except WorkerCrashError as exc:
            self._reject(request_id, exc)
        return future

    def run_job(self, spec: JobSpec, timeout: float | None = None) -> JobResponse:
        """Submit ``spec`` and block until its response arrives."""

        return self.send_job(spec).result(timeout=timeout)

    def _take(self, request_id: Any) -> Future[JobResponse] | None:
        with self._pending_lock:
            future = self._pending.pop(request_id, None) if isinstance(request_id, int) else None
            # Ordered with mark_busy in send_job by the same lock.
            if not self._pending:
                self._supervisor.mark_idle()
        return future

    def _reject(self, request_id: int, exc: BaseException) -> None:
        future = self._take(request_id)
        if future is not None and not future.done():
            future.set_exception(exc)

    def _handle_message(self, message: protocol.Message) -> None:
        request_id = message.get("id")
        future = self._take(request_id)
        if future is None:
            LOGGER.warning("dropping worker response for unknown request %r", request_id)
            return
        if future.done():
            return
        if message.get("status") == protocol.STATUS_OK:
            try:
                future.set_result(JobResponse.from_wire(message.get("response") or {}))
            except ValidationError as exc:
                future.set_exception(WorkerProtocolError(f"Invalid job response: {exc}"))
            return
        error: RelayError = error_from_wire(message.get("error_code"), str(message.get("message", "")))
        future.set_exception(error)

    def _handle_crash(self, returncode: int | None, detail: str) -> None:
        with self._pending_lock:
            pending = list(self._pending.values())
            self._pending.clear()
        message = f"Worker process exited unexpectedly (status {returncode})"
        if detail:
            message = f"{message}: {detail.splitlines()[-1]}"
        LOGGER.warning("%s; failing %d pending job(s)", message, len(pending))
        for future in pending:
            if not future.done():
                future.set_exception(WorkerCrashError(message, returncode=returncode))
        if self._auto_restart:
            self._schedule_restart()

    def _schedule_restart(self) -> None:
        thread = threading.Thread(target=self._restart, name="eslint-relay-restart", daemon=True)
        self._restart_thread = thread
        thread.start()

    def _restart(self) -> None:
        try:
            self._supervisor.recover()
        except RelayError as exc:
            # The next send_job retries the start and surfaces the failure to its caller.
            LOGGER.warning("worker restart failed: %s", exc)

    def wait_for_restart(self, timeout: float | None = None) -> None:
        """Block until a scheduled restart has finished."""

        thread = self._restart_thread
        if thread is not None:
            thread.join(timeout)


__all__ = ["JobDispatcher"]
