from __future__ import annotations

import ast
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Mapping

from ..core.errors import CollectionUnavailableError
from ..core.logging import log_event
from ..evidence import ObservedValue
from .base import MetricCollector

if TYPE_CHECKING:
    from ..core.context import RunContext

DEFAULT_EXCLUDED_DIRS = frozenset(
    {".git", ".hg", ".venv", "venv", ".tox", ".nox", "node_modules", "__pycache__", "build", "dist", ".mypy_cache", ".pytest_cache"}
)

_BRANCH_NODES = (
    ast.If,
    ast.For,
    ast.AsyncFor,
    ast.While,
    ast.IfExp,
    ast.ExceptHandler,
    ast.Assert,
    ast.comprehension,
    ast.match_case,
)
_FUNCTION_NODES = (ast.FunctionDef, ast.AsyncFunctionDef)


def _span(node: ast.AST) -> int:
    end = getattr(node, "end_lineno", None) or node.lineno
    return end - node.lineno + 1


def _param_count(node: ast.FunctionDef | ast.AsyncFunctionDef) -> int:
    args = node.args
    positional = [*args.posonlyargs, *args.args]
    count = len(positional) + len(args.kwonlyargs)
    count += int(args.vararg is not None) + int(args.kwarg is not None)
    if positional and positional[0].arg in {"self", "cls"}:
        count -= 1
    return count


def _function_is_typed(node: ast.FunctionDef | ast.AsyncFunctionDef) -> bool:
    if node.returns is None:
        return False
    args = [*node.args.posonlyargs, *node.args.args, *node.args.kwonlyargs]
    if args and args[0].arg in {"self", "cls"}:
        args = args[1:]
    if node.args.vararg is not None:
        args.append(node.args.vararg)
    if node.args.kwarg is not None:
        args.append(node.args.kwarg)
    return all(arg.annotation is not None for arg in args)


def cyclomatic_complexity(node: ast.FunctionDef | ast.AsyncFunctionDef) -> int:
    """McCabe-style count: one plus every branch point in the body, nested defs excluded."""
    complexity = 1
    stack: list[ast.AST] = list(ast.iter_child_nodes(node))
    while stack:
        child = stack.pop()
        if isinstance(child, (*_FUNCTION_NODES, ast.ClassDef, ast.Lambda)):
            continue
        if isinstance(child, _BRANCH_NODES):
            complexity += 1
            if isinstance(child, ast.comprehension):
                complexity += len(child.ifs)
        elif isinstance(child, ast.BoolOp):
            complexity += len(child.values) - 1
        stack.extend(ast.iter_child_nodes(child))
    return complexity


@dataclass
class CodeStats:
    files: int = 0
    max_module_lines: int = 0
    max_function_lines: int = 0
    max_class_lines: int = 0
    max_complexity: int = 0
    max_params: int = 0
    public_functions: int = 0
    typed_functions: int = 0
    unparsable: int = 0

    def add_module(self, source: str, tree: ast.Module) -> None:
        self.files += 1
        self.max_module_lines = max(self.max_module_lines, len(source.splitlines()))
        for node in ast.walk(tree):
            if isinstance(node, _FUNCTION_NODES):
                self.max_function_lines = max(self.max_function_lines, _span(node))
                self.max_complexity = max(self.max_complexity, cyclomatic_complexity(node))
                self.max_params = max(self.max_params, _param_count(node))
                if not node.name.startswith("_"):
                    self.public_functions += 1
                    self.typed_functions += int(_function_is_typed(node))
            elif isinstance(node, ast.ClassDef):
                self.max_class_lines = max(self.max_class_lines, _span(node))

    @property
    def type_annotation_pct(self) -> float:
        if not self.public_functions:
            return 100.0
        return round(self.typed_functions * 100.0 / self.public_functions, 2)


def iter_python_files(root: Path, excluded_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS) -> list[Path]:
    excluded = frozenset(excluded_dirs)
    out: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [name for name in dirnames if name not in excluded]
        out.extend(Path(dirpath) / name for name in filenames if name.endswith(".py"))
    return sorted(out)


class StaticAnalysisCollector(MetricCollector):
    """Source-size and complexity metrics for the Python files under a repository root."""

    name = "static-analysis"
    description = "Python source metrics (function/class/module size, complexity, annotations) via ast"
    provides = (
        "code.max_function_lines",
        "code.max_class_lines",
        "code.max_module_lines",
        "code.max_cyclomatic_complexity",
        "code.max_function_params",
        "code.type_annotation_pct",
        "code.python_file_count",
    )

    def __init__(
        self,
        root: Path,
        *,
        excluded_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
        ctx: RunContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.root = Path(root)
        self.excluded_dirs = frozenset(excluded_dirs)

    def scan(self) -> CodeStats:
        if not self.root.is_dir():
            raise CollectionUnavailableError(f"source root {self.root} is not a directory", collector=self.name)
        stats = CodeStats()
        for path in iter_python_files(self.root, self.excluded_dirs):
            try:
                source = path.read_text(encoding="utf-8")
                tree = ast.parse(source, filename=str(path))
            except (OSError, UnicodeDecodeError, SyntaxError, ValueError) as exc:
                stats.unparsable += 1
                log_event(self._ctx, "warn", "collector", "skip-file", collector=self.name, path=str(path), reason=str(exc))
                continue
            stats.add_module(source, tree)
        return stats

    def _measure(self) -> Mapping[str, ObservedValue]:
        stats = self.scan()
        log_event(self._ctx, "debug", "collector", "scanned", collector=self.name, files=stats.files, skipped=stats.unparsable)
        values: dict[str, ObservedValue] = {"code.python_file_count": stats.files}
        if stats.files:
            values.update(
                {
                    "code.max_function_lines": stats.max_function_lines,
                    "code.max_class_lines": stats.max_class_lines,
                    "code.max_module_lines": stats.max_module_lines,
                    "code.max_cyclomatic_complexity": stats.max_complexity,
                    "code.max_function_params": stats.max_params,
                    "code.type_annotation_pct": stats.type_annotation_pct,
                }
            )
        return values


__all__ = ["CodeStats", "StaticAnalysisCollector", "cyclomatic_complexity", "iter_python_files"]
