"""Shared runtime plumbing: errors, exit codes, context, logging and process helpers."""

from __future__ import annotations

from .errors import (
    CatalogLoadError,
    CollectionUnavailableError,
    ConfigError,
    DuplicateRuleIdError,
    EvaluationCancelledError,
    MalformedRuleError,
    SchemaValidationError,
    StdcheckError,
    TypeMismatchError,
)

__all__ = [
    "CatalogLoadError",
    "CollectionUnavailableError",
    "ConfigError",
    "DuplicateRuleIdError",
    "EvaluationCancelledError",
    "MalformedRuleError",
    "SchemaValidationError",
    "StdcheckError",
    "TypeMismatchError",
]
