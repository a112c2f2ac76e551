"""Utility functions for timestamps and other common tasks."""

import time


def now_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds.

    Persisted records and lock markers both use this unit.

    Returns:
        int: Milliseconds since the Unix epoch
    """
    return int(time.time() * 1000)
