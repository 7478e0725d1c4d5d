from __future__ import annotations

import json
import threading
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

import yaml

from ..contracts import METRICS_SNAPSHOT, validation_errors
from ..core.clock import as_utc, utc_now
from ..core.errors import CollectionUnavailableError
from ..core.logging import log_event
from ..evidence import Evidence, ObservedValue

if TYPE_CHECKING:
    from ..core.context import RunContext


def _observed(value: Any) -> ObservedValue:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class StaticCollector:
    """Answers from an in-memory mapping of metric key to observed value."""

    def __init__(
        self,
        values: Mapping[str, ObservedValue],
        *,
        name: str = "static",
        collected_at: datetime | None = None,
    ) -> None:
        self.name = name
        self._values = {str(key): _observed(value) for key, value in values.items()}
        self._collected_at = as_utc(collected_at) if collected_at is not None else None

    @property
    def provides(self) -> tuple[str, ...]:
        return tuple(sorted(self._values))

    def collect(self, metric_key: str) -> Evidence | None:
        if metric_key not in self._values:
            return None
        return Evidence(
            metric_key=metric_key,
            observed_value=self._values[metric_key],
            source=self.name,
            collected_at=self._collected_at or utc_now(),
        )


def _stringify_timestamps(document: Any) -> Any:
    """YAML turns bare ISO timestamps into datetimes; the snapshot schema expects strings."""
    if isinstance(document, dict):
        return {key: _stringify_timestamps(value) for key, value in document.items()}
    if isinstance(document, (datetime, date)):
        return document.isoformat()
    return document


def _parse_timestamp(raw: object, *, where: str) -> datetime | None:
    if raw in (None, ""):
        return None
    if isinstance(raw, datetime):
        return as_utc(raw)
    text = str(raw).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError as exc:
        raise CollectionUnavailableError(f"{where}: invalid collected_at {raw!r}") from exc


class SnapshotCollector:
    """Answers from a metrics snapshot file exported by a metrics backend.

    The file is JSON or YAML shaped like ``{"metrics": {key: value}}``; a value
    may also be ``{"value": v, "source": "...", "collected_at": "..."}``.
    """

    def __init__(self, path: str | Path, *, name: str | None = None, ctx: RunContext | None = None) -> None:
        self.path = Path(path)
        self.name = name or f"snapshot:{self.path.name}"
        self._ctx = ctx
        self._lock = threading.Lock()
        self._evidence: dict[str, Evidence] | None = None

    @property
    def provides(self) -> tuple[str, ...]:
        try:
            return tuple(sorted(self._load()))
        except CollectionUnavailableError:
            return ()

    def _read(self) -> Any:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CollectionUnavailableError(
                f"metrics snapshot {self.path} unavailable: {exc.strerror or exc}", collector=self.name
            ) from exc
        try:
            if self.path.suffix.lower() in {".yaml", ".yml"}:
                return _stringify_timestamps(yaml.safe_load(text))
            return json.loads(text)
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise CollectionUnavailableError(f"metrics snapshot {self.path} unreadable: {exc}", collector=self.name) from exc

    def _load(self) -> dict[str, Evidence]:
        with self._lock:
            if self._evidence is not None:
                return self._evidence
            document = self._read()
            issues = validation_errors(METRICS_SNAPSHOT, document)
            if issues:
                raise CollectionUnavailableError(
                    f"metrics snapshot {self.path} invalid at {issues[0].pointer}: {issues[0].message}",
                    collector=self.name,
                )
            where = str(self.path)
            default_source = str(document.get("source") or self.name)
            default_at = _parse_timestamp(document.get("collected_at"), where=where) or utc_now()
            evidence: dict[str, Evidence] = {}
            for key, raw in document["metrics"].items():
                if isinstance(raw, dict):
                    value = _observed(raw["value"])
                    source = str(raw.get("source") or default_source)
                    at = _parse_timestamp(raw.get("collected_at"), where=f"{where}:{key}") or default_at
                else:
                    value, source, at = _observed(raw), default_source, default_at
                try:
                    evidence[str(key)] = Evidence(metric_key=str(key), observed_value=value, source=source, collected_at=at)
                except ValueError as exc:
                    log_event(self._ctx, "warn", "collector", "snapshot-skip", path=where, metric_key=key, reason=str(exc))
            log_event(self._ctx, "debug", "collector", "snapshot-loaded", path=where, metrics=len(evidence))
            self._evidence = evidence
            return evidence

    def collect(self, metric_key: str) -> Evidence | None:
        return self._load().get(metric_key)


__all__ = ["SnapshotCollector", "StaticCollector"]
