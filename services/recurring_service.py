import logging
from datetime import date, datetime, timedelta

from models.generation import GenerationPolicy, GenerationResult
from models.recurrence_rule import RecurrenceRule
from models.recurring_item import RecurringItem
from services.date_calculator import occurrences_between
from services.generation_engine import GenerationEngine
from services.ports import Clock, ItemRepository, TransactionSink
from utils.clock import SystemClock
from utils.constants import UPCOMING_DAYS
from utils.errors import ItemNotFoundError, ValidationError

logger = logging.getLogger(__name__)


class RecurringService:
    def __init__(
        self,
        repository: ItemRepository,
        sink: TransactionSink,
        clock: Clock | None = None,
    ):
        self._repo = repository
        self._sink = sink
        self._clock = clock or SystemClock()
        self._engine = GenerationEngine(repository, sink, self._clock)

    def today(self) -> date:
        return self._clock.today()

    # ── Queries ──────────────────────────────────────────────────────────────

    def get(self, item_id: str) -> RecurringItem | None:
        return self._repo.get(item_id)

    def get_all(self) -> list[RecurringItem]:
        return sorted(self._repo.get_all(), key=lambda i: (i.title.lower(), i.id))

    def get_active(self) -> list[RecurringItem]:
        ref = self.today()
        return [i for i in self.get_all() if i.is_active and not i.is_ended(ref)]

    def get_paused(self) -> list[RecurringItem]:
        ref = self.today()
        return [i for i in self.get_all() if not i.is_active and not i.is_ended(ref)]

    def get_ended(self) -> list[RecurringItem]:
        ref = self.today()
        return [i for i in self.get_all() if i.is_ended(ref)]

    def list_upcoming(self, within_days: int = UPCOMING_DAYS) -> list[RecurringItem]:
        """Active items due on or before today + within_days, soonest first.
        Overdue items are included."""
        if within_days < 0:
            raise ValidationError("within_days cannot be negative.")
        horizon = self.today() + timedelta(days=within_days)
        upcoming = [i for i in self.get_active() if i.next_due_date <= horizon]
        return sorted(upcoming, key=lambda i: (i.next_due_date, i.title.lower()))

    def project_for_period(self, start_date: date, end_date: date) -> list[dict]:
        """
        Return [{date, amount, kind, item_id}] for every occurrence of every
        active item that falls within [start_date, end_date].
        """
        result = []
        for item in self.get_active():
            period_end = min(item.end_date, end_date) if item.end_date else end_date
            for d in occurrences_between(item.rule, item.next_due_date, start_date, period_end):
                result.append({
                    "date": d,
                    "amount": item.amount,
                    "kind": item.kind,
                    "item_id": item.id,
                })
        return sorted(result, key=lambda p: (p["date"], p["item_id"]))

    # ── Commands ─────────────────────────────────────────────────────────────

    def create(
        self,
        kind,
        title: str,
        amount,
        category: str,
        rule: RecurrenceRule,
        start_date: date,
        end_date: date | None = None,
        note: str = "",
    ) -> RecurringItem:
        item = RecurringItem.create(
            kind=kind,
            title=title,
            amount=amount,
            category=category,
            rule=rule,
            start_date=start_date,
            today=self.today(),
            end_date=end_date,
            note=note,
        )
        self._repo.save(item)
        logger.info("Created recurring %s %r (%s), first due %s",
                    item.kind.value, item.title, item.id, item.next_due_date)
        return item

    def update(self, item: RecurringItem) -> RecurringItem:
        """Persist an edited item. A changed rule or start date reschedules it."""
        existing = self._require(item.id)
        item.rule.validate()
        if item.rule != existing.rule or item.start_date != existing.start_date:
            item = item.rescheduled(self.today())
        item.validate()
        self._repo.save(item)
        return item

    def edit(self, item_id: str, **changes) -> RecurringItem:
        existing = self._require(item_id)
        updated = existing.edited(self.today(), **changes)
        self._repo.save(updated)
        return updated

    def delete(self, item_id: str):
        if not self._repo.delete(item_id):
            raise ItemNotFoundError(item_id)
        logger.info("Deleted recurring item %s", item_id)

    def pause(self, item_id: str) -> RecurringItem:
        item = self._require(item_id).paused()
        self._repo.save(item)
        logger.info("Paused recurring item %s", item_id)
        return item

    def resume(self, item_id: str) -> RecurringItem:
        item = self._require(item_id).resumed(self.today())
        self._repo.save(item)
        logger.info("Resumed recurring item %s, next due %s", item_id, item.next_due_date)
        return item

    def generate_due(
        self,
        now: datetime | date | None = None,
        policy: GenerationPolicy | None = None,
    ) -> GenerationResult:
        return self._engine.generate_due(now, policy)

    def _require(self, item_id: str) -> RecurringItem:
        item = self._repo.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item
