"""Evidence collectors: pluggable probes that observe metric values."""

from __future__ import annotations

from .base import Collector, CollectorSet, MetricCollector
from .code import StaticAnalysisCollector
from .coverage import CoverageCollector
from .factory import CollectorOptions, build_collector_set, builtin_collectors
from .prometheus import PrometheusCollector
from .static import SnapshotCollector, StaticCollector
from .vcs import VcsCollector

__all__ = [
    "Collector",
    "CollectorOptions",
    "CollectorSet",
    "CoverageCollector",
    "MetricCollector",
    "PrometheusCollector",
    "SnapshotCollector",
    "StaticAnalysisCollector",
    "StaticCollector",
    "VcsCollector",
    "build_collector_set",
    "builtin_collectors",
]
