"""Rule evaluation.

Every distinct metric key is resolved once, in parallel with the other keys,
by asking the collectors in registration order; the first Evidence wins. Each
collector call is bounded by a timeout so a hung backend turns into an
unavailable source instead of a stuck run. Outcomes are then computed per rule
from the shared Evidence, so overlapping rules see the same observation.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterable

from ..collectors.base import Collector, CollectorSet
from ..core.errors import CollectionUnavailableError, EvaluationCancelledError, TypeMismatchError
from ..core.logging import log_event
from ..evidence import Evidence
from ..rules.model import Rule
from .model import Outcome, Report, RuleResult
from .operators import apply_operator, format_value

if TYPE_CHECKING:
    from ..core.context import RunContext

DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_MAX_WORKERS = 8
_POLL_SECONDS = 0.05


@dataclass(frozen=True)
class Resolution:
    metric_key: str
    evidence: Evidence | None
    unavailable: tuple[str, ...] = ()


def call_with_timeout(
    fn: Callable[[str], Any],
    arg: str,
    timeout_seconds: float | None,
    *,
    label: str,
    cancel: threading.Event | None = None,
) -> Any:
    """Run `fn(arg)` on a daemon thread and give up after `timeout_seconds`.

    The worker is a daemon so an abandoned call cannot keep the process alive.
    Raises EvaluationCancelledError as soon as `cancel` is set.
    """
    box: dict[str, Any] = {}
    done = threading.Event()

    def _target() -> None:
        try:
            box["value"] = fn(arg)
        except Exception as exc:  # noqa: BLE001 - re-raised in the caller thread
            box["error"] = exc
        finally:
            done.set()

    worker = threading.Thread(target=_target, name=f"stdcheck-collect-{label}", daemon=True)
    worker.start()
    deadline = None if timeout_seconds is None else time.monotonic() + timeout_seconds
    while not done.wait(_POLL_SECONDS):
        if cancel is not None and cancel.is_set():
            raise EvaluationCancelledError()
        if deadline is not None and time.monotonic() >= deadline:
            raise CollectionUnavailableError(f"{label}: timed out after {timeout_seconds:g}s", collector=label, metric_key=arg)
    if "error" in box:
        raise box["error"]
    return box.get("value")


def resolve_metric(
    metric_key: str,
    collectors: Iterable[Collector],
    *,
    timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS,
    cancel: threading.Event | None = None,
    ctx: RunContext | None = None,
) -> Resolution:
    unavailable: list[str] = []
    for collector in collectors:
        if cancel is not None and cancel.is_set():
            break
        name = str(getattr(collector, "name", type(collector).__name__))
        try:
            evidence = call_with_timeout(collector.collect, metric_key, timeout_seconds, label=name, cancel=cancel)
        except EvaluationCancelledError:
            raise
        except CollectionUnavailableError as exc:
            unavailable.append(f"{name}: {exc}" if not str(exc).startswith(f"{name}:") else str(exc))
            log_event(ctx, "warn", "collector", "unavailable", collector=name, metric_key=metric_key, reason=str(exc))
            continue
        except Exception as exc:  # noqa: BLE001 - a broken collector must not abort other rules
            unavailable.append(f"{name}: {exc.__class__.__name__}: {exc}")
            log_event(ctx, "error", "collector", "crashed", collector=name, metric_key=metric_key, error=f"{exc.__class__.__name__}: {exc}")
            continue
        if evidence is None:
            continue
        if not isinstance(evidence, Evidence) or evidence.metric_key != metric_key:
            unavailable.append(f"{name}: returned invalid evidence")
            continue
        log_event(ctx, "debug", "collector", "resolved", collector=name, metric_key=metric_key, value=evidence.observed_value)
        return Resolution(metric_key=metric_key, evidence=evidence)
    return Resolution(metric_key=metric_key, evidence=None, unavailable=tuple(unavailable))


def evaluate_rule(rule: Rule, resolution: Resolution) -> RuleResult:
    evidence = resolution.evidence
    if evidence is None:
        if resolution.unavailable:
            reason = "collection unavailable: " + "; ".join(resolution.unavailable)
        else:
            reason = f"no collector provided metric `{rule.metric_key}`"
        return RuleResult(rule=rule, evidence=None, outcome=Outcome.NOT_EVALUATED, reason=reason)

    observed = evidence.observed_value
    expectation = f"{rule.operator.value} {format_value(rule.threshold)}"
    try:
        holds = apply_operator(rule.operator, observed, rule.threshold, metric_key=rule.metric_key)
    except TypeMismatchError as exc:
        return RuleResult(rule=rule, evidence=evidence, outcome=Outcome.FAIL, reason=f"type mismatch: {exc}")
    if holds:
        return RuleResult(rule=rule, evidence=evidence, outcome=Outcome.PASS, reason=f"observed {format_value(observed)} {expectation}")
    outcome = Outcome.FAIL if rule.blocking else Outcome.WARN
    return RuleResult(
        rule=rule,
        evidence=evidence,
        outcome=outcome,
        reason=f"observed {format_value(observed)}, expected {expectation}",
    )


def _abort(pool: ThreadPoolExecutor, futures: Iterable[Future], cancel: threading.Event, ctx: RunContext | None) -> EvaluationCancelledError:
    cancel.set()
    for future in futures:
        future.cancel()
    pool.shutdown(wait=False, cancel_futures=True)
    log_event(ctx, "warn", "evaluator", "cancelled")
    return EvaluationCancelledError()


def evaluate(
    rules: Iterable[Rule],
    collectors: CollectorSet | Iterable[Collector],
    *,
    timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS,
    max_workers: int = DEFAULT_MAX_WORKERS,
    cancel: threading.Event | None = None,
    ctx: RunContext | None = None,
) -> Report:
    """Evaluate `rules` against the evidence `collectors` can provide.

    Raises EvaluationCancelledError, and produces no report, when `cancel` is
    set before every metric has been resolved.
    """
    if timeout_seconds is not None and timeout_seconds <= 0:
        raise ValueError("timeout_seconds must be greater than zero")
    if max_workers <= 0:
        raise ValueError("max_workers must be greater than zero")
    ordered_rules = tuple(rules)
    collector_set = collectors if isinstance(collectors, CollectorSet) else CollectorSet(collectors)
    metric_keys = tuple(dict.fromkeys(rule.metric_key for rule in ordered_rules))
    stop = cancel or threading.Event()
    started = time.perf_counter()
    log_event(ctx, "info", "evaluator", "start", rules=len(ordered_rules), metrics=len(metric_keys), collectors=len(collector_set))

    resolutions: dict[str, Resolution] = {}
    if metric_keys:
        if stop.is_set():
            raise EvaluationCancelledError()
        pool = ThreadPoolExecutor(max_workers=min(max_workers, len(metric_keys)), thread_name_prefix="stdcheck-eval")
        futures = {
            pool.submit(resolve_metric, key, collector_set, timeout_seconds=timeout_seconds, cancel=stop, ctx=ctx): key
            for key in metric_keys
        }
        pending = set(futures)
        try:
            while pending:
                if stop.is_set():
                    raise _abort(pool, pending, stop, ctx)
                done, pending = wait(pending, timeout=_POLL_SECONDS, return_when=FIRST_COMPLETED)
                for future in done:
                    resolutions[futures[future]] = future.result()
        except KeyboardInterrupt:
            raise _abort(pool, pending, stop, ctx) from None
        if stop.is_set():
            raise _abort(pool, (), stop, ctx)
        pool.shutdown(wait=True)

    report = Report(results=tuple(evaluate_rule(rule, resolutions[rule.metric_key]) for rule in ordered_rules))
    log_event(
        ctx,
        "info",
        "evaluator",
        "finish",
        duration_ms=int((time.perf_counter() - started) * 1000),
        **{key: value for key, value in report.outcome_counts.items()},
    )
    return report


__all__ = [
    "DEFAULT_MAX_WORKERS",
    "DEFAULT_TIMEOUT_SECONDS",
    "Resolution",
    "call_with_timeout",
    "evaluate",
    "evaluate_rule",
    "resolve_metric",
]
