# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy shared by the resolver, dispatcher and worker."""

from __future__ import annotations

from typing import Final


class RelayError(Exception):
    """Base class for every failure surfaced by eslint-relay."""


class ConfigError(RelayError):
    """Raised when relay settings cannot be loaded or validated."""


class EngineNotFoundError(RelayError):
    """Raised when no usable ESLint installation can be located."""


class ConfigNotFoundError(RelayError):
    """Raised when a project has no ESLint configuration and linting is disabled for it."""


class ResolutionError(RelayError):
    """Raised when a filesystem walk or the npm prefix query fails."""


class WorkerCrashError(RelayError):
    """Raised for every job that was outstanding when the worker process died."""

    def __init__(self, message: str, *, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class WorkerProtocolError(RelayError):
    """Raised when the worker process does not honour the JSON-lines handshake."""


class JobExecutionError(RelayError):
    """Raised when ESLint exits abnormally or emits output that cannot be parsed."""


class EngineLoadError(RelayError):
    """Raised by an engine loader when a directory holds no runnable engine."""


class ModifiedFileError(RelayError):
    """Raised when a fix is requested for a buffer with unsaved changes."""


_WIRE_ERRORS: Final[dict[str, type[RelayError]]] = {
    cls.__name__: cls
    for cls in (
        ConfigError,
        EngineNotFoundError,
        ConfigNotFoundError,
        ResolutionError,
        JobExecutionError,
        ModifiedFileError,
    )
}


def error_from_wire(code: str | None, message: str) -> RelayError:
    """Rebuild the exception described by a worker error response.

    Args:
        code: Error class name reported by the worker.
        message: Human readable error message.

    Returns:
        RelayError: Instance of the matching class, or :class:`JobExecutionError`
        for codes this side does not recognise.
    """

    error_cls = _WIRE_ERRORS.get(code or "", JobExecutionError)
    return error_cls(message)


def error_code(exc: BaseException) -> str:
    """Return the wire code used to report ``exc`` back to the caller."""

    name = type(exc).__name__
    return name if name in _WIRE_ERRORS else "JobExecutionError"


__all__ = [
    "ConfigError",
    "ConfigNotFoundError",
    "EngineLoadError",
    "EngineNotFoundError",
    "JobExecutionError",
    "ModifiedFileError",
    "RelayError",
    "ResolutionError",
    "WorkerCrashError",
    "WorkerProtocolError",
    "error_code",
    "error_from_wire",
]
