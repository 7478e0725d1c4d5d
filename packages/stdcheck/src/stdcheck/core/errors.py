from __future__ import annotations

from dataclasses import dataclass

from .exit_codes import ERR_CANCELLED, ERR_CATALOG, ERR_CONFIG, ERR_INTERNAL


@dataclass(eq=False)
class StdcheckError(Exception):
    message: str
    code: int = ERR_INTERNAL
    kind: str = "generic_error"

    def __str__(self) -> str:
        return self.message


class ConfigError(StdcheckError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ERR_CONFIG, "config_error")


class SchemaValidationError(StdcheckError):
    def __init__(self, message: str, *, schema_name: str = "", pointer: str = "") -> None:
        super().__init__(message, ERR_INTERNAL, "schema_error")
        self.schema_name = schema_name
        self.pointer = pointer


class CatalogLoadError(StdcheckError):
    """Raised when a rule catalog cannot be turned into rules; always fatal for a run."""

    def __init__(self, message: str, *, rule_id: str = "", kind: str = "catalog_error") -> None:
        super().__init__(message, ERR_CATALOG, kind)
        self.rule_id = rule_id


class MalformedRuleError(CatalogLoadError):
    def __init__(self, message: str, *, rule_id: str = "") -> None:
        super().__init__(message, rule_id=rule_id, kind="malformed_rule")


class DuplicateRuleIdError(CatalogLoadError):
    def __init__(self, rule_id: str) -> None:
        super().__init__(f"duplicate rule id `{rule_id}`", rule_id=rule_id, kind="duplicate_rule_id")


class CollectionUnavailableError(StdcheckError):
    """A collector's backing source could not be reached; the affected rules are not evaluated."""

    def __init__(self, message: str, *, collector: str = "", metric_key: str = "") -> None:
        super().__init__(message, ERR_INTERNAL, "collection_unavailable")
        self.collector = collector
        self.metric_key = metric_key


class TypeMismatchError(StdcheckError):
    def __init__(self, message: str, *, metric_key: str = "") -> None:
        super().__init__(message, ERR_INTERNAL, "type_mismatch")
        self.metric_key = metric_key


class EvaluationCancelledError(StdcheckError):
    def __init__(self, message: str = "evaluation cancelled; collected evidence discarded") -> None:
        super().__init__(message, ERR_CANCELLED, "cancelled")


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
