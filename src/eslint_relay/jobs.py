# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Job request/response models exchanged with the worker process."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Final, TypeAlias

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import EngineConfig

JsonScalar: TypeAlias = str | int | float | bool | None
JsonValue: TypeAlias = "JsonScalar | list[JsonValue] | dict[str, JsonValue]"

_ESLINT_ERROR_LEVEL: Final[int] = 2
_ESLINT_WARNING_LEVEL: Final[int] = 1


class JobKind(str, Enum):
    """Work a job asks the engine to perform."""

    LINT = "lint"
    FIX = "fix"


class Severity(str, Enum):
    """Severity levels normalising ESLint's numeric vocabulary."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def from_level(cls, level: int | None) -> Severity:
        if level == _ESLINT_ERROR_LEVEL:
            return cls.ERROR
        if level == _ESLINT_WARNING_LEVEL or level is None:
            return cls.WARNING
        return cls.INFO


class FixEdit(BaseModel):
    """Replacement ESLint proposes for a character range of the source."""

    model_config = ConfigDict(frozen=True)

    range: tuple[int, int]
    text: str


class LintMessage(BaseModel):
    """Single diagnostic reported for a linted file."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    file_path: str
    severity: Severity
    message: str
    rule_id: str | None = None
    line: int | None = None
    column: int | None = None
    end_line: int | None = None
    end_column: int | None = None
    fix: FixEdit | None = None

    @property
    def fixable(self) -> bool:
        return self.fix is not None

    @classmethod
    def from_eslint(cls, entry: Mapping[str, Any], file_path: str) -> LintMessage:
        """Build a message from one entry of an ESLint result's ``messages`` list.

        Args:
            entry: Raw ESLint message mapping.
            file_path: Path the enclosing result belongs to.

        Returns:
            LintMessage: Normalised message.
        """

        raw_fix = entry.get("fix")
        fix = None
        if isinstance(raw_fix, Mapping) and isinstance(raw_fix.get("range"), Sequence):
            start, end = raw_fix["range"]
            fix = FixEdit(range=(int(start), int(end)), text=str(raw_fix.get("text", "")))
        text = entry.get("message")
        return cls(
            file_path=file_path,
            severity=Severity.from_level(_coerce_int(entry.get("severity"))),
            message=(text if isinstance(text, str) else "").strip(),
            rule_id=entry.get("ruleId") if isinstance(entry.get("ruleId"), str) else None,
            line=_coerce_int(entry.get("line")),
            column=_coerce_int(entry.get("column")),
            end_line=_coerce_int(entry.get("endLine")),
            end_column=_coerce_int(entry.get("endColumn")),
            fix=fix,
        )


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


class JobSpec(BaseModel):
    """Immutable description of one lint or fix request."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    kind: JobKind
    contents: str
    config: EngineConfig = Field(default_factory=EngineConfig)
    rules: dict[str, bool] | None = None
    file_path: str
    project_path: str = ""

    def to_wire(self) -> dict[str, JsonValue]:
        """Return the JSON payload sent to the worker."""

        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> JobSpec:
        return cls.model_validate(payload)


class JobResponse(BaseModel):
    """Result of a completed job: diagnostics for lint, a status line for fix."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    messages: list[LintMessage] | str = Field(default_factory=list)
    rules_diff: dict[str, bool] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, JsonValue]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> JobResponse:
        return cls.model_validate(payload)


__all__ = [
    "FixEdit",
    "JobKind",
    "JobResponse",
    "JobSpec",
    "JsonValue",
    "LintMessage",
    "Severity",
]
