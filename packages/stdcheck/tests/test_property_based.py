from __future__ import annotations

from datetime import datetime, timezone

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from stdcheck.collectors import StaticCollector
from stdcheck.engine import Outcome, evaluate
from stdcheck.reporting import exit_code_for, render
from stdcheck.rules import dump, load

FIXED = datetime(2026, 10, 1, tzinfo=timezone.utc)

_CATEGORIES = ["quality", "security", "performance", "testing", "deployment", "monitoring", "incident_response", "capacity"]
_SEVERITIES = ["critical", "high", "medium", "low"]
_numbers = st.one_of(st.integers(-10_000, 10_000), st.floats(-1e6, 1e6, allow_nan=False, allow_infinity=False))
_words = st.from_regex(r"[a-z][a-z0-9_]{0,11}", fullmatch=True)


@st.composite
def _rule_rows(draw: st.DrawFn) -> list[dict]:
    ids = draw(st.lists(st.from_regex(r"[a-z][a-z0-9.-]{0,15}", fullmatch=True), min_size=1, max_size=8, unique=True))
    rows = []
    for rule_id in ids:
        operator = draw(st.sampled_from(["lt", "lte", "gt", "gte", "eq", "in_set"]))
        if operator == "in_set":
            threshold = draw(st.lists(st.one_of(_words, st.integers(-100, 100)), min_size=1, max_size=4))
        elif operator == "eq":
            threshold = draw(st.one_of(_words, _numbers))
        else:
            threshold = draw(_numbers)
        rows.append(
            {
                "id": rule_id,
                "category": draw(st.sampled_from(_CATEGORIES)),
                "description": f"rule {rule_id}",
                "metric_key": f"m.{draw(st.integers(0, 4))}",
                "operator": operator,
                "threshold": threshold,
                "severity": draw(st.sampled_from(_SEVERITIES)),
            }
        )
    return rows


@pytest.mark.unit
@given(_rule_rows())
def test_catalog_round_trips_through_dump(rows: list[dict]) -> None:
    catalog = load(rows)
    assert load(dump(catalog)).as_set() == catalog.as_set()


@pytest.mark.unit
@given(_rule_rows(), st.dictionaries(st.sampled_from([f"m.{i}" for i in range(5)]), st.one_of(_numbers, _words), max_size=5))
@settings(max_examples=50)
def test_evaluation_is_deterministic_and_json_is_stable(rows: list[dict], values: dict) -> None:
    catalog = load(rows)
    collectors = [StaticCollector(values, collected_at=FIXED)]
    first = evaluate(catalog, collectors, max_workers=4)
    second = evaluate(catalog, collectors, max_workers=1)
    assert first == second
    assert render(first, "json") == render(second, "json")
    assert first.total == len(catalog)
    for row in first.results:
        if row.outcome is Outcome.NOT_EVALUATED:
            assert row.rule.metric_key not in values
        assert row.reason


@pytest.mark.unit
@given(_rule_rows())
@settings(max_examples=50)
def test_unanswered_rules_never_change_the_exit_code(rows: list[dict]) -> None:
    report = evaluate(load(rows), [StaticCollector({}, collected_at=FIXED)])
    assert all(row.outcome is Outcome.NOT_EVALUATED for row in report.results)
    assert exit_code_for(report) == 0
