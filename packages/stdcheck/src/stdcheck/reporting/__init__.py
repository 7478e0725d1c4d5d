"""Human and machine renderings of an evaluation report."""

from __future__ import annotations

from .render import FORMATS, exit_code_for, normalize_format, render, render_human, render_json, report_payload

__all__ = ["FORMATS", "exit_code_for", "normalize_format", "render", "render_human", "render_json", "report_payload"]
