"""Tool settings resolution: CLI flag, then environment, then `[tool.stdcheck]`, then default."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Callable, Mapping, TypeVar

from .errors import ConfigError

T = TypeVar("T")

ENV_RUN_ID = "STDCHECK_RUN_ID"
ENV_TIMEOUT = "STDCHECK_TIMEOUT"
ENV_LOG_FORMAT = "STDCHECK_LOG_FORMAT"
ENV_MAX_WORKERS = "STDCHECK_MAX_WORKERS"


def load_tool_settings(repo_root: Path) -> dict[str, Any]:
    pyproject = repo_root / "pyproject.toml"
    if not pyproject.is_file():
        return {}
    try:
        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{pyproject}: invalid TOML: {exc}") from exc
    section = data.get("tool", {}).get("stdcheck", {})
    if not isinstance(section, dict):
        raise ConfigError(f"{pyproject}: [tool.stdcheck] must be a table")
    return section


def resolve_setting(
    cli_value: T | None,
    env_name: str | None,
    settings: Mapping[str, Any],
    key: str,
    default: T,
    cast: Callable[[Any], T],
) -> T:
    if cli_value is not None:
        raw: Any = cli_value
        origin = "command line"
    elif env_name and os.environ.get(env_name, "").strip():
        raw = os.environ[env_name].strip()
        origin = f"${env_name}"
    elif key in settings:
        raw = settings[key]
        origin = f"[tool.stdcheck] {key}"
    else:
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid value for {key} from {origin}: {raw!r}") from exc


def positive_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("boolean is not a number")
    out = float(value)
    if not out > 0:
        raise ValueError("must be greater than zero")
    return out


def positive_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("boolean is not a number")
    out = int(value)
    if out <= 0:
        raise ValueError("must be greater than zero")
    return out


def string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise TypeError("expected a string or a list of strings")
    return [str(item) for item in value]


__all__ = [
    "ENV_LOG_FORMAT",
    "ENV_MAX_WORKERS",
    "ENV_RUN_ID",
    "ENV_TIMEOUT",
    "load_tool_settings",
    "positive_float",
    "positive_int",
    "resolve_setting",
    "string_list",
]
