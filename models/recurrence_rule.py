from dataclasses import dataclass
from enum import Enum
from typing import Optional

from utils.constants import DAYS_OF_WEEK, LAST_DAY_OF_MONTH
from utils.errors import ValidationError


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


@dataclass(frozen=True)
class RecurrenceRule:
    frequency: Frequency
    custom_interval_days: int = 1               # custom only
    weekdays: Optional[frozenset[int]] = None   # weekly only, 1=Mon..7=Sun
    day_of_month: Optional[int] = None          # monthly only, 1-31 or 32 = last day

    def __post_init__(self):
        # Accept plain strings and any iterable of weekdays.
        if not isinstance(self.frequency, Frequency):
            try:
                object.__setattr__(self, "frequency", Frequency(self.frequency))
            except ValueError:
                raise ValidationError(f"Invalid frequency: {self.frequency}") from None
        if self.weekdays is not None and not isinstance(self.weekdays, frozenset):
            object.__setattr__(self, "weekdays", frozenset(self.weekdays))

    @property
    def has_weekdays(self) -> bool:
        return bool(self.weekdays)

    def validate(self) -> "RecurrenceRule":
        if isinstance(self.custom_interval_days, bool) or not isinstance(self.custom_interval_days, int):
            raise ValidationError("Custom interval must be a whole number of days.")
        if self.custom_interval_days < 1:
            raise ValidationError("Custom interval must be at least 1 day.")
        if self.day_of_month is not None and not 1 <= self.day_of_month <= LAST_DAY_OF_MONTH:
            raise ValidationError("Day of month must be between 1 and 31, or 32 for the last day.")
        if self.weekdays:
            bad = sorted(d for d in self.weekdays if not 1 <= d <= 7)
            if bad:
                raise ValidationError(f"Weekdays must be between 1 (Mon) and 7 (Sun), got {bad}.")
        return self

    def describe(self) -> str:
        """Human-readable pattern, e.g. 'Weekly on Mon, Fri'."""
        if self.frequency == Frequency.DAILY:
            return "Daily"
        if self.frequency == Frequency.WEEKLY:
            if self.weekdays:
                names = ", ".join(DAYS_OF_WEEK[d - 1] for d in sorted(self.weekdays))
                return f"Weekly on {names}"
            return "Weekly"
        if self.frequency == Frequency.MONTHLY:
            if self.day_of_month == LAST_DAY_OF_MONTH:
                return "Monthly (last day)"
            if self.day_of_month is not None:
                return f"Monthly on day {self.day_of_month}"
            return "Monthly"
        if self.frequency == Frequency.YEARLY:
            return "Yearly"
        if self.custom_interval_days == 1:
            return "Every day"
        return f"Every {self.custom_interval_days} days"

    @classmethod
    def daily(cls) -> "RecurrenceRule":
        return cls(Frequency.DAILY)

    @classmethod
    def weekly(cls, weekdays=None) -> "RecurrenceRule":
        return cls(Frequency.WEEKLY, weekdays=frozenset(weekdays) if weekdays else None)

    @classmethod
    def monthly(cls, day_of_month: int | None = None) -> "RecurrenceRule":
        return cls(Frequency.MONTHLY, day_of_month=day_of_month)

    @classmethod
    def yearly(cls) -> "RecurrenceRule":
        return cls(Frequency.YEARLY)

    @classmethod
    def every(cls, days: int) -> "RecurrenceRule":
        return cls(Frequency.CUSTOM, custom_interval_days=days)
