from __future__ import annotations

from .model import Evidence, ObservedValue

__all__ = ["Evidence", "ObservedValue"]
