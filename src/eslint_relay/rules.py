# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Memory of which ESLint rules are auto-fixable, shared across jobs."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .config import rule_list

RuleSuppressionSet = dict[str, bool]


class RuleState:
    """Track rules reported as auto-fixable so later jobs can suppress them.

    Entries map a rule id to ``True`` while the rule is known to be fixable.
    Only the caller mutates the state, after a job has completed.
    """

    def __init__(self, rules: Mapping[str, bool] | None = None) -> None:
        self._rules: dict[str, bool] = dict(rules or {})

    def update_rules(self, diff: Mapping[str, bool]) -> None:
        """Merge ``diff`` into the state; rules absent from ``diff`` keep their value."""

        self._rules.update(diff)

    def replace_rules(self, rules: Mapping[str, bool]) -> None:
        """Discard the current state and adopt ``rules``.

        Args:
            rules: Complete mapping of rule id to fixable flag.
        """

        self._rules = dict(rules)

    def fixable_rules(self) -> tuple[str, ...]:
        """Return the rule ids currently recorded as fixable, sorted."""

        return tuple(sorted(rule for rule, fixable in self._rules.items() if fixable))

    @staticmethod
    def to_ignored(explicit: Iterable[str]) -> RuleSuppressionSet:
        """Return a suppression set holding only ``explicit``."""

        return {rule: True for rule in rule_list(explicit)}

    def get_ignored_rules(self, explicit: Iterable[str]) -> RuleSuppressionSet:
        """Return ``explicit`` plus every rule known to be fixable."""

        ignored = self.to_ignored(explicit)
        for rule in self.fixable_rules():
            ignored.setdefault(rule, True)
        return ignored

    def __contains__(self, rule: object) -> bool:
        return bool(self._rules.get(rule)) if isinstance(rule, str) else False

    def __len__(self) -> int:
        return len(self.fixable_rules())


__all__ = ["RuleState", "RuleSuppressionSet"]
