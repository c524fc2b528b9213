from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional

from models.recurring_item import ItemKind


@dataclass(frozen=True)
class GeneratedOccurrence:
    item_id: str
    kind: ItemKind
    date: date
    amount: Decimal
    category: str
    transaction_id: object      # whatever the sink returned


@dataclass(frozen=True)
class GenerationFailure:
    item_id: str
    due_date: Optional[date]    # None when the failure happened while saving
    error: Exception


@dataclass(frozen=True)
class GenerationPolicy:
    """Throttle for repeated passes, passed in by the host.

    A pass is skipped when the previous one ran less than min_interval ago.
    The day-granularity guard on each item applies regardless.
    """
    last_run_at: Optional[datetime] = None
    min_interval: timedelta = timedelta(0)

    def should_skip(self, now: datetime) -> bool:
        if self.last_run_at is None or self.min_interval <= timedelta(0):
            return False
        elapsed = now - self.last_run_at
        # A clock that moved backwards never suppresses a pass.
        return timedelta(0) <= elapsed < self.min_interval


@dataclass
class GenerationResult:
    ran_on: date
    occurrences: list[GeneratedOccurrence] = field(default_factory=list)
    failures: list[GenerationFailure] = field(default_factory=list)
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures

    def for_item(self, item_id: str) -> list[GeneratedOccurrence]:
        return [o for o in self.occurrences if o.item_id == item_id]
