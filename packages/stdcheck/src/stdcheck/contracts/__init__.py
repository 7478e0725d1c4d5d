"""Machine-readable contracts (JSON schemas) for catalogs, snapshots and reports."""

from __future__ import annotations

from .schema import SchemaIssue, validate, validation_errors

RULES_CATALOG = "stdcheck.rules-catalog.v1"
METRICS_SNAPSHOT = "stdcheck.metrics-snapshot.v1"
REPORT = "stdcheck.report.v1"

__all__ = ["METRICS_SNAPSHOT", "REPORT", "RULES_CATALOG", "SchemaIssue", "validate", "validation_errors"]
