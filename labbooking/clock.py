"""Injectable clock so slot lapse and cancellation windows can be tested"""

from datetime import datetime, timedelta


class Clock:
    """Wall clock in local naive time, matching how slot dates and times are stored"""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock(Clock):
    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


_clock = Clock()


def get_clock() -> Clock:
    """FastAPI dependency; override in tests"""
    return _clock
