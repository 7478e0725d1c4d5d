from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal, Mapping

from .config import ENV_LOG_FORMAT, ENV_RUN_ID, load_tool_settings

LogFormat = Literal["text", "json"]


@dataclass(frozen=True)
class RunContext:
    run_id: str
    repo_root: Path
    log_json: bool
    verbose: bool
    quiet: bool
    settings: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_args(
        cls,
        run_id: str | None,
        repo_root: str | Path | None,
        log_format: LogFormat | None = None,
        verbose: bool = False,
        quiet: bool = False,
    ) -> "RunContext":
        root = Path(repo_root or os.getcwd()).resolve()
        default_run = f"stdcheck-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}"
        resolved_run_id = run_id or os.environ.get(ENV_RUN_ID, "").strip() or default_run
        resolved_log_format = log_format or os.environ.get(ENV_LOG_FORMAT, "").strip() or "text"
        return cls(
            run_id=resolved_run_id,
            repo_root=root,
            log_json=resolved_log_format == "json",
            verbose=verbose,
            quiet=quiet,
            settings=load_tool_settings(root),
        )
