# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""JSON-lines protocol spoken between the dispatcher and the worker process.

Every message is one JSON object on its own line:

* worker → caller, once at start-up: ``{"status": "ready", "version": ...}``
* caller → worker: ``{"id": <int>, "op": "job", "job": {...}}`` or
  ``{"id": <int>, "op": "shutdown"}``
* worker → caller: ``{"id": <int>, "status": "ok", "response": {...}}`` or
  ``{"id": <int>, "status": "error", "error_code": "...", "message": "..."}``
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Final, TypeAlias

from .errors import WorkerProtocolError

OP_JOB: Final[str] = "job"
OP_SHUTDOWN: Final[str] = "shutdown"
STATUS_READY: Final[str] = "ready"
STATUS_OK: Final[str] = "ok"
STATUS_ERROR: Final[str] = "error"

Message: TypeAlias = dict[str, Any]


def encode(message: Mapping[str, Any]) -> str:
    """Serialise ``message`` as a single protocol line including the newline."""

    return json.dumps(message, separators=(",", ":")) + "\n"


def decode(line: str) -> Message:
    """Parse one protocol line.

    Raises:
        WorkerProtocolError: If the line is not a JSON object.
    """

    try:
        payload = json.loads(line)
    except json.JSONDecodeError as exc:
        raise WorkerProtocolError(f"Malformed protocol line: {line[:200]!r}") from exc
    if not isinstance(payload, dict):
        raise WorkerProtocolError(f"Protocol messages must be objects, got {type(payload).__name__}")
    return payload


def is_ready(message: Mapping[str, Any]) -> bool:
    """Return whether ``message`` is the worker's ready announcement.

    Args:
        message: Decoded protocol message.

    Returns:
        bool: ``True`` for an id-less ``ready`` status line.
    """

    return message.get("status") == STATUS_READY and "id" not in message


def ok(request_id: int | None, response: Mapping[str, Any]) -> Message:
    """Build a success reply.

    Args:
        request_id: Correlation id of the request being answered.
        response: Job response payload.

    Returns:
        Message: Reply carrying ``response`` with status ``ok``.
    """

    return {"id": request_id, "status": STATUS_OK, "response": dict(response)}


def error(request_id: int | None, code: str, message: str) -> Message:
    """Build an error reply.

    Args:
        request_id: Correlation id of the failed request, or ``None`` when the
            request could not be parsed.
        code: Wire error code, usually an exception class name.
        message: Human readable failure description.

    Returns:
        Message: Reply with status ``error``.
    """

    return {"id": request_id, "status": STATUS_ERROR, "error_code": code, "message": message}


__all__ = [
    "OP_JOB",
    "OP_SHUTDOWN",
    "STATUS_ERROR",
    "STATUS_OK",
    "STATUS_READY",
    "Message",
    "decode",
    "encode",
    "error",
    "is_ready",
    "ok",
]
