from __future__ import annotations

import operator as _op
from typing import Callable

from ..core.errors import TypeMismatchError
from ..evidence import ObservedValue
from ..rules.model import Operator, Threshold, is_number, sorted_members

_NUMERIC: dict[Operator, Callable[[float, float], bool]] = {
    Operator.LT: _op.lt,
    Operator.LTE: _op.le,
    Operator.GT: _op.gt,
    Operator.GTE: _op.ge,
}


def format_value(value: object) -> str:
    if isinstance(value, frozenset):
        return "[" + ", ".join(format_value(item) for item in sorted_members(value)) + "]"
    if isinstance(value, str):
        return repr(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value)) if abs(value) < 1e15 else repr(value)
    return str(value)


def _kind(value: object) -> str:
    return "number" if is_number(value) else type(value).__name__


def apply_operator(operator: Operator, observed: ObservedValue, threshold: Threshold, *, metric_key: str = "") -> bool:
    """Return whether `observed <operator> threshold` holds.

    Raises TypeMismatchError when the observed value cannot be compared the
    way the operator requires.
    """
    if operator in _NUMERIC:
        if not is_number(observed):
            raise TypeMismatchError(
                f"operator `{operator.value}` needs a numeric observed value, got {_kind(observed)} {format_value(observed)}",
                metric_key=metric_key,
            )
        return _NUMERIC[operator](observed, threshold)
    if operator is Operator.EQ:
        if is_number(threshold) != is_number(observed):
            raise TypeMismatchError(
                f"operator `eq` compares {_kind(threshold)} threshold with {_kind(observed)} {format_value(observed)}",
                metric_key=metric_key,
            )
        return observed == threshold
    if operator is Operator.IN_SET:
        if not (is_number(observed) or isinstance(observed, str)):
            raise TypeMismatchError(f"operator `in_set` cannot test {_kind(observed)} membership", metric_key=metric_key)
        return observed in threshold
    raise TypeMismatchError(f"unsupported operator `{operator}`", metric_key=metric_key)


__all__ = ["apply_operator", "format_value"]
