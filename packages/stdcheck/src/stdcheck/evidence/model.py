from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

from ..core.clock import as_utc, utc_now
from ..rules.model import is_number

ObservedValue = Union[int, float, str]


@dataclass(frozen=True)
class Evidence:
    """One observed value for a metric key, as recorded by a collector."""

    metric_key: str
    observed_value: ObservedValue
    source: str
    collected_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        key = str(self.metric_key).strip()
        if not key:
            raise ValueError("evidence metric_key must be non-empty")
        value = self.observed_value
        if not (isinstance(value, str) or is_number(value)):
            raise TypeError(f"evidence for `{key}` must be a number or string, got {type(value).__name__}")
        if is_number(value) and not math.isfinite(value):
            raise ValueError(f"evidence for `{key}` must be finite, got {value!r}")
        if not isinstance(self.collected_at, datetime):
            raise TypeError("evidence collected_at must be a datetime")
        object.__setattr__(self, "metric_key", key)
        object.__setattr__(self, "source", str(self.source).strip() or "unknown")
        object.__setattr__(self, "collected_at", as_utc(self.collected_at))

    def as_mapping(self) -> dict[str, Any]:
        return {
            "metric_key": self.metric_key,
            "observed_value": self.observed_value,
            "source": self.source,
            "collected_at": self.collected_at.isoformat(),
        }
