"""Canonical JSON serialization helpers."""

from __future__ import annotations

import json
from typing import Any


def dumps_json(payload: Any, pretty: bool = False, sort_keys: bool = True) -> str:
    if pretty:
        return json.dumps(payload, indent=2, sort_keys=sort_keys)
    return json.dumps(payload, sort_keys=sort_keys)
