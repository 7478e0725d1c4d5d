"""Rule evaluation engine: operators, outcome policy and the report model."""

from __future__ import annotations

from .evaluator import DEFAULT_MAX_WORKERS, DEFAULT_TIMEOUT_SECONDS, Resolution, evaluate, evaluate_rule, resolve_metric
from .model import Outcome, Report, RuleResult
from .operators import apply_operator, format_value

__all__ = [
    "DEFAULT_MAX_WORKERS",
    "DEFAULT_TIMEOUT_SECONDS",
    "Outcome",
    "Report",
    "Resolution",
    "RuleResult",
    "apply_operator",
    "evaluate",
    "evaluate_rule",
    "format_value",
    "resolve_metric",
]
