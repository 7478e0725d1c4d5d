"""Rule catalog loading and canonical re-serialization.

A catalog document is a mapping ``{"schema_version": 1, "rules": [...]}`` (or a
bare list of rule mappings) stored as JSON or YAML. Loading is a pure parse:
the document is validated against the packaged ``stdcheck.rules-catalog.v1``
schema, then every entry is turned into a :class:`Rule`. Catalog order is
kept because it is the registration order used to break ties.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Union

import yaml

from ..contracts import RULES_CATALOG, validation_errors
from ..core.errors import CatalogLoadError, DuplicateRuleIdError, MalformedRuleError
from ..core.logging import log_event
from ..core.serialize import dumps_json
from .model import Rule

if TYPE_CHECKING:
    from ..core.context import RunContext

CatalogSource = Union[str, Path, Mapping[str, Any], list]

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class RuleCatalog:
    """Ordered, read-only collection of rules with unique ids."""

    def __init__(self, rules: Iterable[Rule] = (), *, origin: str = "") -> None:
        ordered: list[Rule] = []
        seen: set[str] = set()
        for rule in rules:
            if rule.id in seen:
                raise DuplicateRuleIdError(rule.id)
            seen.add(rule.id)
            ordered.append(rule)
        self._rules = tuple(ordered)
        self._by_id = {rule.id: rule for rule in self._rules}
        self.origin = origin

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleCatalog):
            return NotImplemented
        return self._rules == other._rules

    def __repr__(self) -> str:
        return f"RuleCatalog(rules={len(self._rules)}, origin={self.origin!r})"

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def get(self, rule_id: str) -> Rule | None:
        return self._by_id.get(rule_id)

    def ids(self) -> tuple[str, ...]:
        return tuple(rule.id for rule in self._rules)

    def as_set(self) -> frozenset[Rule]:
        return frozenset(self._rules)

    def metric_keys(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(rule.metric_key for rule in self._rules))

    def by_metric(self) -> dict[str, tuple[Rule, ...]]:
        grouped: dict[str, list[Rule]] = {}
        for rule in self._rules:
            grouped.setdefault(rule.metric_key, []).append(rule)
        return {key: tuple(rows) for key, rows in grouped.items()}

    def overlaps(self) -> dict[str, tuple[str, ...]]:
        return {key: tuple(rule.id for rule in rows) for key, rows in self.by_metric().items() if len(rows) > 1}


def _read_document(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogLoadError(f"cannot read rule catalog {path}: {exc.strerror or exc}") from exc
    try:
        if path.suffix.lower() in _YAML_SUFFIXES:
            return yaml.safe_load(text)
        return json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise CatalogLoadError(f"cannot parse rule catalog {path}: {exc}") from exc


def _rule_label(rows: list[Any], index: int) -> tuple[str, str]:
    row = rows[index] if 0 <= index < len(rows) else None
    raw_id = row.get("id") if isinstance(row, Mapping) else None
    if isinstance(raw_id, str) and raw_id.strip():
        return raw_id.strip(), f"rule `{raw_id.strip()}`"
    return "", f"rule #{index}"


def _validate_document(document: Mapping[str, Any], origin: str) -> None:
    issues = validation_errors(RULES_CATALOG, document)
    if not issues:
        return
    rows = document.get("rules") if isinstance(document.get("rules"), list) else []
    first = issues[0]
    if len(first.path) >= 2 and first.path[0] == "rules" and isinstance(first.path[1], int):
        rule_id, label = _rule_label(rows, first.path[1])
        field = "/".join(str(part) for part in first.path[2:]) or "<entry>"
        raise MalformedRuleError(f"{label}: {field}: {first.message}", rule_id=rule_id)
    raise CatalogLoadError(f"invalid rule catalog {origin or '<inline>'} at {first.pointer}: {first.message}")


def _normalize_document(document: Any, origin: str) -> dict[str, Any]:
    if isinstance(document, list):
        return {"schema_version": 1, "rules": document}
    if isinstance(document, Mapping):
        return dict(document)
    where = origin or "<inline>"
    raise CatalogLoadError(f"rule catalog {where} must be a mapping with `rules` or a list of rules")


def load(source: CatalogSource, *, ctx: RunContext | None = None) -> RuleCatalog:
    """Parse `source` into a RuleCatalog.

    Raises MalformedRuleError for incomplete or mistyped entries and
    DuplicateRuleIdError when two entries share an id.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        origin = str(path)
        document = _read_document(path)
    else:
        origin = ""
        document = source
    normalized = _normalize_document(document, origin)
    _validate_document(normalized, origin)

    rules: list[Rule] = []
    seen: set[str] = set()
    for index, row in enumerate(normalized["rules"]):
        rule = Rule.from_mapping(row, index=index)
        if rule.id in seen:
            raise DuplicateRuleIdError(rule.id)
        seen.add(rule.id)
        rules.append(rule)
    catalog = RuleCatalog(rules, origin=origin)

    for metric_key, rule_ids in catalog.overlaps().items():
        log_event(ctx, "info", "catalog", "overlap", metric_key=metric_key, rules=",".join(rule_ids))
    log_event(ctx, "debug", "catalog", "loaded", origin=origin or "<inline>", rules=len(catalog))
    return catalog


def dump(catalog: RuleCatalog | Iterable[Rule]) -> dict[str, Any]:
    return {"schema_version": 1, "rules": [rule.as_mapping() for rule in catalog]}


def dumps(catalog: RuleCatalog | Iterable[Rule], fmt: str = "json") -> str:
    payload = dump(catalog)
    if fmt == "yaml":
        return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)
    if fmt == "json":
        return dumps_json(payload, pretty=True, sort_keys=False)
    raise ValueError(f"unsupported catalog format `{fmt}`")


__all__ = ["CatalogSource", "RuleCatalog", "dump", "dumps", "load"]
