import logging
from datetime import date, datetime

from models.generation import (
    GeneratedOccurrence,
    GenerationFailure,
    GenerationPolicy,
    GenerationResult,
)
from models.recurring_item import ItemKind, RecurringItem
from models.transaction import Origin
from services.date_calculator import next_occurrence
from services.ports import Clock, ItemRepository, TransactionSink
from utils.errors import GenerationError

logger = logging.getLogger(__name__)


class GenerationEngine:
    """Materializes due occurrences of recurring items, catching up missed ones.

    Each item is processed on its own: occurrences are emitted in date order,
    one sink call at a time, and the item is saved with progress up to the
    last occurrence that was emitted successfully.
    """

    def __init__(self, repository: ItemRepository, sink: TransactionSink, clock: Clock):
        self._repo = repository
        self._sink = sink
        self._clock = clock

    def generate_due(
        self,
        now: datetime | date | None = None,
        policy: GenerationPolicy | None = None,
    ) -> GenerationResult:
        """
        Generate every occurrence due on or before `now` (default: the clock's
        today). Returns the emitted occurrences and the per-item failures.
        """
        today, now_dt = self._resolve_now(now)
        result = GenerationResult(ran_on=today)

        if policy is not None and policy.should_skip(now_dt):
            logger.info("Skipping generation: last pass ran at %s", policy.last_run_at)
            result.skipped = True
            return result

        for item in self._repo.list_active_due(today):
            if not item.should_generate(today):
                continue
            if item.already_generated_on(today):
                logger.debug("Item %s already generated on %s", item.id, today)
                continue
            self._generate_item(item, today, result)

        if result.occurrences or result.failures:
            logger.info(
                "Generation on %s: %d occurrence(s), %d failure(s)",
                today, len(result.occurrences), len(result.failures),
            )
        return result

    def _resolve_now(self, now) -> tuple[date, datetime]:
        if now is None:
            today = self._clock.today()
            return today, datetime.combine(today, datetime.now().time())
        if isinstance(now, datetime):
            return now.date(), now
        return now, datetime.combine(now, datetime.min.time())

    def _generate_item(self, item: RecurringItem, today: date, result: GenerationResult):
        cursor = item.next_due_date
        progress = item
        emitted = 0

        while cursor <= today and (item.end_date is None or cursor <= item.end_date):
            try:
                tx_id = self._emit(item, cursor)
            except Exception as exc:
                logger.exception("Failed to generate %s for item %s", cursor, item.id)
                result.failures.append(
                    GenerationFailure(item.id, cursor, GenerationError(item.id, cursor, exc))
                )
                # Progress is saved up to the failed date; last_generated_date
                # is left alone so the next call retries it.
                return

            result.occurrences.append(GeneratedOccurrence(
                item_id=item.id,
                kind=item.kind,
                date=cursor,
                amount=item.amount,
                category=item.category,
                transaction_id=tx_id,
            ))
            emitted += 1
            cursor = next_occurrence(cursor, item.rule)
            # Persisted progress never lags the sink by more than one occurrence.
            progress = progress.advanced(cursor)
            if not self._persist(progress, result):
                return

        if emitted:
            logger.info("Generated %d occurrence(s) for %r (%s)", emitted, item.title, item.id)
        self._persist(progress.advanced(cursor, generated_on=today), result)

    def _emit(self, item: RecurringItem, due: date):
        if item.kind == ItemKind.EXPENSE:
            return self._sink.create_expense(
                amount=item.amount,
                category=item.category,
                date=due,
                note=item.note,
                origin=Origin.RECURRING,
                link_id=item.id,
            )
        return self._sink.create_income(
            amount=item.amount,
            source=item.category,
            date=due,
            description=item.note,
            origin=Origin.RECURRING,
            link_id=item.id,
        )

    def _persist(self, item: RecurringItem, result: GenerationResult) -> bool:
        try:
            self._repo.save(item)
        except Exception as exc:
            logger.exception("Failed to save progress for item %s", item.id)
            result.failures.append(
                GenerationFailure(item.id, None, GenerationError(item.id, None, exc))
            )
            return False
        return True
