"""Typed policy rules and the catalog loader."""

from __future__ import annotations

from .catalog import RuleCatalog, dump, dumps, load
from .model import Category, Operator, Rule, RuleSeverity, is_number

__all__ = ["Category", "Operator", "Rule", "RuleCatalog", "RuleSeverity", "dump", "dumps", "is_number", "load"]
