from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Union

from ..core.errors import MalformedRuleError

Scalar = Union[int, float, str]
Threshold = Union[int, float, str, frozenset]

REQUIRED_FIELDS = ("id", "category", "description", "metric_key", "operator", "threshold", "severity")


class Category(str, Enum):
    QUALITY = "quality"
    SECURITY = "security"
    PERFORMANCE = "performance"
    TESTING = "testing"
    DEPLOYMENT = "deployment"
    MONITORING = "monitoring"
    INCIDENT_RESPONSE = "incident_response"
    CAPACITY = "capacity"


class Operator(str, Enum):
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    EQ = "eq"
    IN_SET = "in_set"

    @property
    def numeric(self) -> bool:
        return self in _NUMERIC_OPERATORS


_NUMERIC_OPERATORS = frozenset({Operator.LT, Operator.LTE, Operator.GT, Operator.GTE})


class RuleSeverity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def blocking(self) -> bool:
        """Critical and high rules block a gate; medium and low only advise."""
        return self in (RuleSeverity.CRITICAL, RuleSeverity.HIGH)

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {RuleSeverity.CRITICAL: 0, RuleSeverity.HIGH: 1, RuleSeverity.MEDIUM: 2, RuleSeverity.LOW: 3}


def is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_scalar(value: object) -> bool:
    if isinstance(value, str):
        return True
    return is_number(value) and math.isfinite(value)


def _scalar_sort_key(value: Scalar) -> tuple[int, float, str]:
    if isinstance(value, str):
        return (1, 0.0, value)
    return (0, float(value), "")


def sorted_members(values: frozenset) -> list[Scalar]:
    return sorted(values, key=_scalar_sort_key)


def check_threshold(operator: Operator, threshold: object, *, rule_id: str = "") -> Threshold:
    """Return the normalized threshold for `operator` or raise MalformedRuleError."""
    label = f"rule `{rule_id}`" if rule_id else "rule"
    if operator.numeric:
        if not is_number(threshold) or not math.isfinite(threshold):
            raise MalformedRuleError(
                f"{label}: operator `{operator.value}` requires a finite numeric threshold, got {threshold!r}",
                rule_id=rule_id,
            )
        return threshold
    if operator is Operator.EQ:
        if not _is_scalar(threshold):
            raise MalformedRuleError(
                f"{label}: operator `eq` requires a number or string threshold, got {threshold!r}",
                rule_id=rule_id,
            )
        return threshold
    if isinstance(threshold, (str, bytes)) or not isinstance(threshold, (list, tuple, set, frozenset)):
        raise MalformedRuleError(
            f"{label}: operator `in_set` requires a list of values, got {threshold!r}",
            rule_id=rule_id,
        )
    members = list(threshold)
    if not members:
        raise MalformedRuleError(f"{label}: operator `in_set` requires a non-empty list", rule_id=rule_id)
    bad = [item for item in members if not _is_scalar(item)]
    if bad:
        raise MalformedRuleError(
            f"{label}: `in_set` members must be numbers or strings, got {bad[0]!r}",
            rule_id=rule_id,
        )
    return frozenset(members)


def _coerce_enum(enum_cls: type[Enum], value: object, field_name: str, rule_id: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(item.value for item in enum_cls)
        raise MalformedRuleError(
            f"rule `{rule_id}`: invalid {field_name} {value!r}; expected one of: {allowed}",
            rule_id=rule_id,
        ) from None


@dataclass(frozen=True)
class Rule:
    id: str
    category: Category
    description: str
    metric_key: str
    operator: Operator
    threshold: Threshold
    severity: RuleSeverity
    remediation: str = ""

    def __post_init__(self) -> None:
        rule_id = str(self.id).strip()
        if not rule_id:
            raise MalformedRuleError("rule id must be a non-empty string")
        metric_key = str(self.metric_key).strip()
        if not metric_key:
            raise MalformedRuleError(f"rule `{rule_id}`: metric_key must be a non-empty string", rule_id=rule_id)
        operator = _coerce_enum(Operator, self.operator, "operator", rule_id)
        object.__setattr__(self, "id", rule_id)
        object.__setattr__(self, "metric_key", metric_key)
        object.__setattr__(self, "category", _coerce_enum(Category, self.category, "category", rule_id))
        object.__setattr__(self, "severity", _coerce_enum(RuleSeverity, self.severity, "severity", rule_id))
        object.__setattr__(self, "operator", operator)
        object.__setattr__(self, "threshold", check_threshold(operator, self.threshold, rule_id=rule_id))
        object.__setattr__(self, "description", str(self.description).strip())
        object.__setattr__(self, "remediation", str(self.remediation or "").strip())

    @property
    def blocking(self) -> bool:
        return self.severity.blocking

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any], *, index: int | None = None) -> "Rule":
        if not isinstance(row, Mapping):
            where = f"rule #{index}" if index is not None else "rule"
            raise MalformedRuleError(f"{where}: entry must be a mapping, got {type(row).__name__}")
        raw_id = row.get("id")
        rule_id = str(raw_id).strip() if isinstance(raw_id, str) else ""
        label = f"rule `{rule_id}`" if rule_id else (f"rule #{index}" if index is not None else "rule")
        missing = [name for name in REQUIRED_FIELDS if name not in row or row[name] is None]
        if missing:
            raise MalformedRuleError(f"{label}: missing required field(s): {', '.join(missing)}", rule_id=rule_id)
        if not rule_id:
            raise MalformedRuleError(f"{label}: id must be a non-empty string")
        for name in ("description", "metric_key"):
            if not isinstance(row[name], str):
                raise MalformedRuleError(f"{label}: {name} must be a string", rule_id=rule_id)
        return cls(
            id=rule_id,
            category=row["category"],
            description=row["description"],
            metric_key=row["metric_key"],
            operator=row["operator"],
            threshold=row["threshold"],
            severity=row["severity"],
            remediation=str(row.get("remediation") or ""),
        )

    def threshold_value(self) -> Scalar | list[Scalar]:
        if isinstance(self.threshold, frozenset):
            return sorted_members(self.threshold)
        return self.threshold

    def as_mapping(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "category": self.category.value,
            "description": self.description,
            "metric_key": self.metric_key,
            "operator": self.operator.value,
            "threshold": self.threshold_value(),
            "severity": self.severity.value,
        }
        if self.remediation:
            payload["remediation"] = self.remediation
        return payload


__all__ = [
    "Category",
    "Operator",
    "REQUIRED_FIELDS",
    "Rule",
    "RuleSeverity",
    "Scalar",
    "Threshold",
    "check_threshold",
    "is_number",
    "sorted_members",
]
