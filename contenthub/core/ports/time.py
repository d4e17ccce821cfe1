from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    """Source of "now". Every timestamp in the hub is timezone-aware UTC."""

    def now_utc(self) -> datetime: ...
