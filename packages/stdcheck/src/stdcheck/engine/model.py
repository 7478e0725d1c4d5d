from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from ..evidence import Evidence
from ..rules.model import Category, Rule, RuleSeverity


class Outcome(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"
    NOT_EVALUATED = "not_evaluated"


@dataclass(frozen=True)
class RuleResult:
    rule: Rule
    evidence: Evidence | None
    outcome: Outcome
    reason: str

    def __post_init__(self) -> None:
        outcome = self.outcome if isinstance(self.outcome, Outcome) else Outcome(str(self.outcome).strip().lower())
        object.__setattr__(self, "outcome", outcome)
        object.__setattr__(self, "reason", str(self.reason).strip())

    @property
    def blocking(self) -> bool:
        return self.outcome is Outcome.FAIL and self.rule.blocking

    def as_mapping(self) -> dict[str, Any]:
        return {
            "rule": self.rule.as_mapping(),
            "evidence": self.evidence.as_mapping() if self.evidence is not None else None,
            "outcome": self.outcome.value,
            "reason": self.reason,
        }


def _empty_counts() -> dict[str, int]:
    return {outcome.value: 0 for outcome in Outcome}


@dataclass(frozen=True)
class Report:
    """Results of one evaluation run, in catalog order, with derived summary counts."""

    results: tuple[RuleResult, ...] = ()
    outcome_counts: Mapping[str, int] = field(default_factory=dict, compare=False)
    severity_counts: Mapping[str, Mapping[str, int]] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        results = tuple(self.results)
        outcomes = _empty_counts()
        severities = {severity.value: _empty_counts() for severity in RuleSeverity}
        for row in results:
            outcomes[row.outcome.value] += 1
            severities[row.rule.severity.value][row.outcome.value] += 1
        object.__setattr__(self, "results", results)
        object.__setattr__(self, "outcome_counts", outcomes)
        object.__setattr__(self, "severity_counts", severities)

    def __len__(self) -> int:
        return len(self.results)

    @property
    def total(self) -> int:
        return len(self.results)

    def count(self, outcome: Outcome) -> int:
        return int(self.outcome_counts.get(outcome.value, 0))

    def blocking_failures(self) -> tuple[RuleResult, ...]:
        return tuple(row for row in self.results if row.blocking)

    def by_category(self) -> dict[Category, tuple[RuleResult, ...]]:
        grouped: dict[Category, list[RuleResult]] = {}
        for row in self.results:
            grouped.setdefault(row.rule.category, []).append(row)
        return {category: tuple(grouped[category]) for category in Category if category in grouped}

    def summary(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "outcomes": dict(self.outcome_counts),
            "severities": {key: dict(value) for key, value in self.severity_counts.items()},
        }


__all__ = ["Outcome", "Report", "RuleResult"]
