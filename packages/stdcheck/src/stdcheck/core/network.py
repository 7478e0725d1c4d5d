"""Centralized network boundary helpers."""

from __future__ import annotations

import urllib.parse
import urllib.request


def http_get(url: str, params: dict[str, str] | None = None, timeout_seconds: float = 5) -> tuple[int, str]:
    if params:
        url = f"{url}?{urllib.parse.urlencode(params)}"
    req = urllib.request.Request(url, method="GET", headers={"Accept": "application/json"})
    with urllib.request.urlopen(req, timeout=timeout_seconds) as resp:  # nosec - caller controls endpoint
        return int(resp.status), resp.read().decode("utf-8", errors="replace")
