from __future__ import annotations

OK = 0
FAIL_BLOCKING = 1
FAIL_ADVISORY = 2
ERR_CATALOG = 3
ERR_CONFIG = 4
ERR_INTERNAL = 99
ERR_CANCELLED = 130
