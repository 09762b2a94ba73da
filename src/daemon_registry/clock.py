"""Wall-clock source shared by every time-dependent component.

Components take a ``clock`` argument (default :func:`utc_now`) so tests can
substitute a deterministic clock.
"""

from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)
