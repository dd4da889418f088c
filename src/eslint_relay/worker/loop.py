# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Request loop reading protocol lines from stdin and answering on stdout."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TextIO

from pydantic import ValidationError

from .. import __version__, protocol
from ..errors import RelayError, WorkerProtocolError, error_code
from ..jobs import JobSpec
from .runner import JobRunner

LOGGER = logging.getLogger(__name__)


def _send(stream: TextIO, message: protocol.Message) -> None:
    stream.write(protocol.encode(message))
    stream.flush()


def _handle_job(runner: JobRunner, request_id: int | None, payload: object) -> protocol.Message:
    try:
        spec = JobSpec.from_wire(payload if isinstance(payload, dict) else {})
    except ValidationError as exc:
        return protocol.error(request_id, WorkerProtocolError.__name__, f"Invalid job payload: {exc}")
    try:
        response = runner.run(spec)
    except (RelayError, OSError, UnicodeError) as exc:
        LOGGER.debug("job %s for %s failed: %s", request_id, spec.file_path, exc)
        return protocol.error(request_id, error_code(exc), str(exc))
    return protocol.ok(request_id, response.to_wire())


def serve(lines: Iterable[str], output: TextIO, *, runner: JobRunner | None = None) -> int:
    """Answer protocol requests from ``lines`` until shutdown or end of input.

    Args:
        lines: Incoming protocol lines, usually ``sys.stdin``.
        output: Stream receiving responses, usually ``sys.stdout``.
        runner: Job runner; a fresh one is created when omitted.

    Returns:
        int: Process exit status.
    """

    job_runner = runner or JobRunner()
    _send(output, {"status": protocol.STATUS_READY, "version": __version__})
    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        try:
            request = protocol.decode(line)
        except WorkerProtocolError as exc:
            _send(output, protocol.error(None, WorkerProtocolError.__name__, str(exc)))
            continue

        request_id = request.get("id")
        op = request.get("op")
        if op == protocol.OP_SHUTDOWN:
            _send(output, protocol.ok(request_id, {}))
            LOGGER.debug("shutdown requested")
            return 0
        if op == protocol.OP_JOB:
            _send(output, _handle_job(job_runner, request_id, request.get("job")))
            continue
        _send(output, protocol.error(request_id, WorkerProtocolError.__name__, f"Unknown operation: {op!r}"))
    return 0


__all__ = ["serve"]
