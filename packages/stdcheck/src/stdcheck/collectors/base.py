from __future__ import annotations

import threading
from collections.abc import Iterator
from datetime import datetime
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Protocol, runtime_checkable

from ..core.clock import utc_now
from ..core.errors import CollectionUnavailableError
from ..evidence import Evidence, ObservedValue

if TYPE_CHECKING:
    from ..core.context import RunContext


@runtime_checkable
class Collector(Protocol):
    """Anything that can observe a metric.

    `collect` returns None when the collector does not answer `metric_key` and
    raises CollectionUnavailableError when its backing source is unreachable.
    """

    name: str

    def collect(self, metric_key: str) -> Evidence | None: ...


class MetricCollector:
    """Base for collectors that answer a fixed set of metric keys from one measurement pass.

    Subclasses implement `_measure()` returning every value they know; the
    pass runs once, under a lock, the first time any key is requested. A pass
    that raises CollectionUnavailableError is remembered and not retried. Keys
    marked with `_unavailable` during a pass raise their own error while the
    other keys still answer.
    """

    name = "metric"
    description = ""
    provides: tuple[str, ...] = ()

    def __init__(self, *, ctx: RunContext | None = None) -> None:
        self._ctx = ctx
        self._lock = threading.Lock()
        self._values: Mapping[str, ObservedValue] | None = None
        self._collected_at: datetime | None = None
        self._error: CollectionUnavailableError | None = None
        self._missing: dict[str, CollectionUnavailableError] = {}

    @property
    def source(self) -> str:
        return self.name

    def _measure(self) -> Mapping[str, ObservedValue]:
        raise NotImplementedError

    def _unavailable(self, keys: Iterable[str], error: CollectionUnavailableError) -> None:
        for key in keys:
            self._missing[key] = error

    def _snapshot(self) -> tuple[Mapping[str, ObservedValue], datetime]:
        with self._lock:
            if self._error is not None:
                raise self._error
            if self._values is None:
                try:
                    self._values = dict(self._measure())
                except CollectionUnavailableError as exc:
                    self._error = exc
                    raise
                self._collected_at = utc_now()
            return self._values, self._collected_at or utc_now()

    def collect(self, metric_key: str) -> Evidence | None:
        if metric_key not in self.provides:
            return None
        values, collected_at = self._snapshot()
        if metric_key in self._missing:
            raise self._missing[metric_key]
        if metric_key not in values:
            return None
        return Evidence(metric_key=metric_key, observed_value=values[metric_key], source=self.source, collected_at=collected_at)


class CollectorSet:
    """Ordered, immutable set of collectors; earlier registrations win ties."""

    def __init__(self, collectors: Iterable[Collector] = ()) -> None:
        items = tuple(collectors)
        for item in items:
            if not isinstance(item, Collector):
                raise TypeError(f"not a collector: {item!r}")
        self._collectors = items

    def __iter__(self) -> Iterator[Collector]:
        return iter(self._collectors)

    def __len__(self) -> int:
        return len(self._collectors)

    def __repr__(self) -> str:
        return f"CollectorSet({', '.join(self.names())})"

    def names(self) -> tuple[str, ...]:
        return tuple(str(item.name) for item in self._collectors)

    def with_collector(self, collector: Collector) -> "CollectorSet":
        return CollectorSet((*self._collectors, collector))

    def describe(self) -> list[dict[str, Any]]:
        return [
            {
                "name": str(item.name),
                "kind": type(item).__name__,
                "provides": list(getattr(item, "provides", ()) or ()),
            }
            for item in self._collectors
        ]


__all__ = ["Collector", "CollectorSet", "MetricCollector"]
