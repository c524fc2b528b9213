from datetime import date
from utils.date_helpers import today


class SystemClock:
    """Clock backed by the local system date."""

    def today(self) -> date:
        return today()


class FixedClock:
    """Clock pinned to a given date; move it with set()."""

    def __init__(self, current: date):
        self._current = current

    def today(self) -> date:
        return self._current

    def set(self, current: date):
        self._current = current
