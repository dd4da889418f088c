# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Lifecycle management for the single persistent worker process."""

from __future__ import annotations

import logging
import os

# Bandit: subprocess usage is intentional; the worker command is our own
# interpreter running this package, spawned without a shell.
import subprocess  # nosec B404
import sys
import threading
from collections import deque
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Final

from . import protocol
from .errors import WorkerCrashError, WorkerProtocolError

LOGGER = logging.getLogger(__name__)

DEFAULT_STARTUP_TIMEOUT: Final[float] = 30.0
DEFAULT_SHUTDOWN_TIMEOUT: Final[float] = 5.0
STDERR_TAIL_LINES: Final[int] = 20
_PACKAGE_ROOT: Final[Path] = Path(__file__).resolve().parent.parent

MessageHandler = Callable[[protocol.Message], None]
CrashHandler = Callable[[int | None, str], None]


class WorkerState(str, Enum):
    """Lifecycle states of the worker process."""

    STOPPED = "stopped"
    STARTING = "starting"
    READY = "ready"
    BUSY = "busy"
    CRASHED = "crashed"


def default_worker_command() -> list[str]:
    """Return the command spawning the worker with the current interpreter."""

    return [sys.executable, "-m", "eslint_relay.worker"]


def default_worker_env() -> dict[str, str]:
    """Return the worker environment, keeping this package importable."""

    env = os.environ.copy()
    existing = env.get("PYTHONPATH")
    env["PYTHONPATH"] = f"{_PACKAGE_ROOT}{os.pathsep}{existing}" if existing else str(_PACKAGE_ROOT)
    return env


@dataclass(slots=True)
class _WorkerProcess:
    """Book-keeping for one spawned worker process."""

    process: subprocess.Popen[str]
    ready: threading.Event = field(default_factory=threading.Event)
    handshake: bool = False
    stopping: bool = False
    crash_reported: bool = False
    stderr_tail: deque[str] = field(default_factory=lambda: deque(maxlen=STDERR_TAIL_LINES))
    threads: list[threading.Thread] = field(default_factory=list)


class WorkerSupervisor:
    """Own one worker process: start it, restart it and notice when it dies.

    States move ``STOPPED → STARTING → READY ⇄ BUSY``; an unexpected exit from
    ``READY`` or ``BUSY`` moves to ``CRASHED`` and fires the crash handler.
    At most one process is alive per supervisor.
    """

    def __init__(
        self,
        *,
        command: Sequence[str] | None = None,
        env: Mapping[str, str] | None = None,
        on_message: MessageHandler | None = None,
        on_crash: CrashHandler | None = None,
        startup_timeout: float = DEFAULT_STARTUP_TIMEOUT,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
    ) -> None:
        self._command = list(command) if command is not None else default_worker_command()
        self._env = dict(env) if env is not None else default_worker_env()
        self._on_message = on_message
        self._on_crash = on_crash
        self._startup_timeout = startup_timeout
        self._shutdown_timeout = shutdown_timeout
        self._state = WorkerState.STOPPED
        self._current: _WorkerProcess | None = None
        self._lifecycle_lock = threading.RLock()
        self._state_lock = threading.Lock()
        self._write_lock = threading.Lock()

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def pid(self) -> int | None:
        worker = self._current
        return worker.process.pid if worker is not None else None

    def set_handlers(self, *, on_message: MessageHandler, on_crash: CrashHandler) -> None:
        self._on_message = on_message
        self._on_crash = on_crash

    def is_alive(self) -> bool:
        worker = self._current
        return worker is not None and worker.process.poll() is None

    def start(self) -> None:
        """Spawn the worker and wait for its ready line; no-op when already running.

        A previous worker found dead here is reported through the crash handler
        before it is replaced, so jobs still waiting on it are released.

        Raises:
            WorkerProtocolError: If the worker exits or stays silent before
                announcing readiness.
        """

        with self._lifecycle_lock:
            if self._state in (WorkerState.STARTING, WorkerState.READY, WorkerState.BUSY) and self.is_alive():
                return
            current = self._current
            if current is not None:
                returncode = current.process.poll()
                if returncode is not None:
                    # The reader may not have seen EOF yet; report the crash
                    # before _stop marks the process as deliberately stopped.
                    self._handle_exit(current, returncode)
                self._stop(force=True)
            self._spawn()

    def restart(self) -> None:
        """Terminate any live worker and start a fresh one."""

        with self._lifecycle_lock:
            LOGGER.info("restarting worker process")
            self._stop(force=True)
            self._spawn()

    def recover(self) -> None:
        """Restart the worker only if it is still in the ``CRASHED`` state."""

        with self._lifecycle_lock:
            if self._state is WorkerState.CRASHED:
                self.restart()

    def kill(self, force: bool = False) -> None:
        """Terminate the worker.

        Args:
            force: Kill immediately instead of requesting a graceful shutdown.
        """

        with self._lifecycle_lock:
            self._stop(force=force)

    def send(self, message: protocol.Message) -> None:
        """Write ``message`` to the worker.

        Raises:
            WorkerCrashError: If no worker is running or its pipe is closed.
        """

        with self._write_lock:
            worker = self._current
            if worker is None or self._state not in (WorkerState.READY, WorkerState.BUSY):
                raise WorkerCrashError(f"Worker is not running (state: {self._state.value})")
            stdin = worker.process.stdin
            if stdin is None:
                raise WorkerCrashError("Worker standard input is not available")
            try:
                stdin.write(protocol.encode(message))
                stdin.flush()
            except (OSError, ValueError) as exc:
                raise WorkerCrashError(f"Unable to write to worker: {exc}") from exc

    def mark_busy(self) -> None:
        self._transition(WorkerState.BUSY, allowed=(WorkerState.READY,))

    def mark_idle(self) -> None:
        self._transition(WorkerState.READY, allowed=(WorkerState.BUSY,))

    def _transition(self, target: WorkerState, *, allowed: Sequence[WorkerState]) -> None:
        with self._state_lock:
            if self._state in allowed:
                self._state = target

    def _spawn(self) -> None:
        with self._state_lock:
            self._state = WorkerState.STARTING
        LOGGER.debug("spawning worker: %s", " ".join(self._command))
        try:
            # Bandit: fixed interpreter command, no shell.
            process = subprocess.Popen(  # nosec B603
                self._command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                bufsize=1,
                env=self._env,
            )
        except OSError as exc:
            with self._state_lock:
                self._state = WorkerState.STOPPED
            raise WorkerProtocolError(f"Unable to start worker process: {exc}") from exc

        worker = _WorkerProcess(process=process)
        self._current = worker
        worker.threads = [
            threading.Thread(target=self._read_loop, args=(worker,), name="eslint-relay-reader", daemon=True),
            threading.Thread(target=self._drain_stderr, args=(worker,), name="eslint-relay-stderr", daemon=True),
        ]
        for thread in worker.threads:
            thread.start()

        worker.ready.wait(self._startup_timeout)
        if not worker.handshake:
            self._stop(force=True)
            detail = "; ".join(worker.stderr_tail) or "no output"
            raise WorkerProtocolError(f"Worker did not become ready: {detail}")
        with self._state_lock:
            if self._current is worker and self._state is WorkerState.STARTING:
                self._state = WorkerState.READY
        LOGGER.debug("worker %s ready", process.pid)

    def _stop(self, *, force: bool) -> None:
        worker = self._current
        if worker is None:
            with self._state_lock:
                self._state = WorkerState.STOPPED
            return
        worker.stopping = True
        process = worker.process
        if process.poll() is None:
            if force:
                process.kill()
            else:
                self._request_shutdown(worker)
        try:
            process.wait(timeout=self._shutdown_timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
        for thread in worker.threads:
            if thread is not threading.current_thread():
                thread.join(timeout=self._shutdown_timeout)
        for stream in (process.stdin, process.stdout, process.stderr):
            if stream is not None:
                try:
                    stream.close()
                except OSError:
                    LOGGER.debug("ignoring error while closing worker pipe", exc_info=True)
        with self._state_lock:
            if self._current is worker:
                self._current = None
                self._state = WorkerState.STOPPED
        LOGGER.debug("worker %s stopped (returncode %s)", process.pid, process.returncode)

    def _request_shutdown(self, worker: _WorkerProcess) -> None:
        stdin = worker.process.stdin
        if stdin is None:
            worker.process.terminate()
            return
        try:
            with self._write_lock:
                stdin.write(protocol.encode({"id": None, "op": protocol.OP_SHUTDOWN}))
                stdin.flush()
                stdin.close()
        except (OSError, ValueError):
            worker.process.terminate()

    def _read_loop(self, worker: _WorkerProcess) -> None:
        stdout = worker.process.stdout
        if stdout is not None:
            for line in stdout:
                if not line.strip():
                    continue
                try:
                    message = protocol.decode(line)
                except WorkerProtocolError as exc:
                    LOGGER.warning("discarding worker output: %s", exc)
                    continue
                if not worker.handshake:
                    if protocol.is_ready(message):
                        worker.handshake = True
                        worker.ready.set()
                    else:
                        LOGGER.warning("unexpected worker message before ready: %s", message)
                    continue
                if worker.stopping and message.get("id") is None:
                    continue
                if self._on_message is not None:
                    self._on_message(message)
        returncode = worker.process.wait()
        worker.ready.set()
        self._handle_exit(worker, returncode)

    def _drain_stderr(self, worker: _WorkerProcess) -> None:
        stderr = worker.process.stderr
        if stderr is None:
            return
        for line in stderr:
            text = line.rstrip()
            if text:
                worker.stderr_tail.append(text)
                LOGGER.debug("worker[%s]: %s", worker.process.pid, text)

    def _handle_exit(self, worker: _WorkerProcess, returncode: int | None) -> None:
        with self._state_lock:
            if self._current is not worker or worker.stopping or not worker.handshake or worker.crash_reported:
                return
            worker.crash_reported = True
            self._state = WorkerState.CRASHED
        # Give the stderr drain a moment so the crash report carries the traceback.
        for thread in worker.threads:
            if thread is not threading.current_thread():
                thread.join(timeout=1.0)
        detail = "\n".join(worker.stderr_tail)
        LOGGER.warning("worker %s exited unexpectedly with status %s", worker.process.pid, returncode)
        if self._on_crash is not None:
            self._on_crash(returncode, detail)


__all__ = [
    "WorkerState",
    "WorkerSupervisor",
    "default_worker_command",
    "default_worker_env",
]
