from __future__ import annotations

from typing import Any

from ..contracts import REPORT, validate
from ..core.exit_codes import FAIL_ADVISORY, FAIL_BLOCKING, OK
from ..core.serialize import dumps_json
from ..engine.model import Outcome, Report, RuleResult

FORMATS = ("human", "json")
_ALIASES = {"text": "human"}
_STATUS_BY_EXIT = {OK: "pass", FAIL_BLOCKING: "fail", FAIL_ADVISORY: "warn"}
_MARK = {Outcome.PASS: "PASS", Outcome.FAIL: "FAIL", Outcome.WARN: "WARN", Outcome.NOT_EVALUATED: "SKIP"}


def exit_code_for(report: Report) -> int:
    """Map a report to the gate exit status.

    0 when nothing failed or warned, 1 when a critical/high rule failed, 2 when
    only warnings or medium/low failures are present. Rules that could not be
    evaluated never change the status.
    """
    if report.blocking_failures():
        return FAIL_BLOCKING
    if report.count(Outcome.FAIL) or report.count(Outcome.WARN):
        return FAIL_ADVISORY
    return OK


def report_status(report: Report) -> str:
    return _STATUS_BY_EXIT[exit_code_for(report)]


def report_payload(report: Report) -> dict[str, Any]:
    code = exit_code_for(report)
    payload: dict[str, Any] = {
        "schema_name": REPORT,
        "schema_version": 1,
        "tool": "stdcheck",
        "status": _STATUS_BY_EXIT[code],
        "exit_code": code,
        "results": [row.as_mapping() for row in report.results],
        "summary": report.summary(),
    }
    validate(REPORT, payload)
    return payload


def render_json(report: Report) -> str:
    return dumps_json(report_payload(report), pretty=True, sort_keys=False)


def _display_rank(row: RuleResult) -> tuple[int, int]:
    if row.outcome is Outcome.FAIL:
        group = 0 if row.rule.blocking else 1
    elif row.outcome is Outcome.WARN:
        group = 2
    elif row.outcome is Outcome.NOT_EVALUATED:
        group = 3
    else:
        group = 4
    return group, row.rule.severity.rank


def summary_line(report: Report) -> str:
    counts = report.outcome_counts
    return (
        f"{report_status(report).upper()}: {report.total} rules, "
        f"{counts['fail']} failed ({len(report.blocking_failures())} blocking), "
        f"{counts['warn']} warned, {counts['not_evaluated']} not evaluated, {counts['pass']} passed"
    )


def render_human(report: Report, *, verbose: bool = False) -> str:
    out = [summary_line(report)]
    blocking = sorted(report.blocking_failures(), key=lambda row: row.rule.severity.rank)
    if blocking:
        # sections follow category order, so blocking rules are named up front
        out.append(f"blocking: {', '.join(row.rule.id for row in blocking)}")
    for category, rows in report.by_category().items():
        # sorted() is stable, so catalog order breaks ties within a group
        shown = [row for row in sorted(rows, key=_display_rank) if verbose or row.outcome is not Outcome.PASS]
        if not shown:
            continue
        out.append("")
        out.append(f"[{category.value}]")
        for row in shown:
            out.append(f"  {_MARK[row.outcome]} {row.rule.id} ({row.rule.severity.value}): {row.reason}")
            if row.rule.remediation and row.outcome in (Outcome.FAIL, Outcome.WARN):
                out.append(f"    hint: {row.rule.remediation}")
    return "\n".join(out)


def normalize_format(fmt: str) -> str:
    key = str(fmt).strip().lower()
    key = _ALIASES.get(key, key)
    if key not in FORMATS:
        raise ValueError(f"unsupported report format `{fmt}`; expected one of: {', '.join(FORMATS)}")
    return key


def render(report: Report, fmt: str = "human", *, verbose: bool = False) -> str:
    if normalize_format(fmt) == "json":
        return render_json(report)
    return render_human(report, verbose=verbose)


__all__ = [
    "FORMATS",
    "exit_code_for",
    "normalize_format",
    "render",
    "render_human",
    "render_json",
    "report_payload",
    "report_status",
    "summary_line",
]
