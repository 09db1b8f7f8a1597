# Overview: Human-readable document numbers for sale transactions.

from __future__ import annotations

import threading
import time

from flask import current_app

_lock = threading.Lock()
_last_millis = 0


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


def next_transaction_number(prefix: str | None = None) -> str:
    """
    Prefix + epoch milliseconds, e.g. "TRX-1735689600000".

    Within one process the numeric part strictly increases (a call landing in
    the same millisecond as the previous one takes the next integer). Across
    processes it is best-effort; the unique constraint on transaction_no
    catches collisions and the sale surfaces them as a commit conflict.
    """
    global _last_millis
    if prefix is None:
        prefix = current_app.config.get("TRANSACTION_NUMBER_PREFIX", "TRX-")

    with _lock:
        millis = max(_now_millis(), _last_millis + 1)
        _last_millis = millis
    return f"{prefix}{millis}"
