"""Time helpers shared by the checkout timers."""
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional


Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def format_countdown(remaining: Optional[timedelta]) -> Optional[str]:
    """Format a remaining duration as ``M:SS`` (None stays None)."""
    if remaining is None:
        return None
    total_seconds = max(int(remaining.total_seconds()), 0)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"
