from __future__ import annotations

import pytest

from stdcheck.core.errors import TypeMismatchError
from stdcheck.engine.operators import apply_operator, format_value
from stdcheck.rules.model import Operator


@pytest.mark.unit
@pytest.mark.parametrize(
    ("operator", "observed", "threshold", "expected"),
    [
        (Operator.LT, 40, 50, True),
        (Operator.LT, 50, 50, False),
        (Operator.LTE, 50, 50, True),
        (Operator.GT, 50.5, 50, True),
        (Operator.GTE, 49.99, 50, False),
        (Operator.EQ, 0, 0.0, True),
        (Operator.EQ, "no", "no", True),
        (Operator.EQ, "No", "no", False),
        (Operator.IN_SET, "json", frozenset({"json", "logfmt"}), True),
        (Operator.IN_SET, 3, frozenset({1, 2}), False),
    ],
)
def test_apply_operator(operator: Operator, observed: object, threshold: object, expected: bool) -> None:
    assert apply_operator(operator, observed, threshold) is expected


@pytest.mark.unit
def test_numeric_operator_rejects_strings() -> None:
    with pytest.raises(TypeMismatchError, match="numeric") as exc:
        apply_operator(Operator.LT, "fast", 50, metric_key="service.p95_latency_ms")
    assert exc.value.metric_key == "service.p95_latency_ms"


@pytest.mark.unit
def test_eq_rejects_number_string_mix() -> None:
    with pytest.raises(TypeMismatchError):
        apply_operator(Operator.EQ, "0", 0)


@pytest.mark.unit
def test_format_value() -> None:
    assert format_value(40.0) == "40"
    assert format_value(99.95) == "99.95"
    assert format_value("no") == "'no'"
    assert format_value(frozenset({"b", "a", 1})) == "[1, 'a', 'b']"
