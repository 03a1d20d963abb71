"""Time source shared by components that take an injectable clock."""

from datetime import datetime
from datetime import timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
