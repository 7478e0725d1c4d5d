"""CLI registration tables."""

from __future__ import annotations

CONFIGURE_HOOKS: tuple[tuple[str, str], ...] = (
    ("stdcheck.commands.evaluate", "configure_evaluate_parser"),
    ("stdcheck.commands.catalog", "configure_catalog_parser"),
    ("stdcheck.commands.collectors", "configure_collectors_parser"),
)

COMMAND_RUNNERS: dict[str, tuple[str, str]] = {
    "evaluate": ("stdcheck.commands.evaluate", "run_evaluate_command"),
    "catalog": ("stdcheck.commands.catalog", "run_catalog_command"),
    "collectors": ("stdcheck.commands.collectors", "run_collectors_command"),
}
