from datetime import UTC, datetime, timedelta


class SystemClock:
    def now_utc(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Controllable clock for tests and replays."""

    def __init__(self, now: datetime):
        self._now = now

    def now_utc(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> datetime:
        self._now = self._now + timedelta(**kwargs)
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now
