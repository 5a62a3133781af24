"""Wall-clock helpers.

All timestamps in persisted records are integer epoch milliseconds.
"""

from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], int]


def epoch_ms() -> int:
    """Return the current UNIX time in whole milliseconds."""
    return int(time.time() * 1000)
