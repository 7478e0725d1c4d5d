from __future__ import annotations

from .validate import SchemaIssue, validate, validation_errors

__all__ = ["SchemaIssue", "validate", "validation_errors"]
