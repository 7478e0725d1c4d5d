from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jsonschema

from ...core.errors import SchemaValidationError
from .catalog import load_schema


@dataclass(frozen=True)
class SchemaIssue:
    path: tuple[str | int, ...]
    message: str

    @property
    def pointer(self) -> str:
        return "/".join(str(part) for part in self.path) or "<root>"


def validation_errors(schema_name: str, payload: Any) -> list[SchemaIssue]:
    schema = load_schema(schema_name)
    validator_cls = jsonschema.validators.validator_for(schema)
    validator = validator_cls(schema)
    issues = [SchemaIssue(path=tuple(err.absolute_path), message=err.message) for err in validator.iter_errors(payload)]
    return sorted(issues, key=lambda issue: (_path_key(issue.path), issue.message))


def _path_key(path: tuple[str | int, ...]) -> tuple[tuple[int, int, str], ...]:
    return tuple((0, part, "") if isinstance(part, int) else (1, 0, str(part)) for part in path)


def validate(schema_name: str, payload: Any) -> None:
    issues = validation_errors(schema_name, payload)
    if issues:
        first = issues[0]
        raise SchemaValidationError(
            f"schema validation failed for {schema_name} at {first.pointer}: {first.message}",
            schema_name=schema_name,
            pointer=first.pointer,
        )
