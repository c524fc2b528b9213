import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from models.recurrence_rule import RecurrenceRule
from services.date_calculator import initial_due
from utils.errors import ValidationError


class ItemKind(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class ItemStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


def new_item_id() -> str:
    return uuid.uuid4().hex


def to_amount(value) -> Decimal:
    """Coerce int/str/Decimal input to a positive Decimal amount."""
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}") from None
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be positive.")
    return amount


@dataclass(frozen=True)
class RecurringItem:
    """A recurring expense or income template plus its schedule progress.

    Values are immutable: advanced(), paused(), resumed() and edited() return
    a new item which the caller persists. The Ended state is derived from
    end_date and never stored.
    """
    id: str
    kind: ItemKind
    title: str
    amount: Decimal
    category: str                   # expense category or income source
    rule: RecurrenceRule
    start_date: date
    next_due_date: date
    note: str = ""                  # note (expense) / description (income)
    end_date: Optional[date] = None
    last_generated_date: Optional[date] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now().replace(microsecond=0))

    @classmethod
    def create(
        cls,
        kind,
        title: str,
        amount,
        category: str,
        rule: RecurrenceRule,
        start_date: date,
        today: date,
        end_date: date | None = None,
        note: str = "",
    ) -> "RecurringItem":
        rule.validate()
        item = cls(
            id=new_item_id(),
            kind=_to_kind(kind),
            title=title,
            amount=to_amount(amount),
            category=category,
            rule=rule,
            start_date=start_date,
            next_due_date=initial_due(start_date, rule, today),
            note=note or "",
            end_date=end_date,
        )
        return item.validate()

    def validate(self) -> "RecurringItem":
        if not self.title or not self.title.strip():
            raise ValidationError("Title cannot be empty.")
        if not isinstance(self.kind, ItemKind):
            raise ValidationError(f"Invalid kind: {self.kind}")
        to_amount(self.amount)
        if not self.category or not self.category.strip():
            raise ValidationError("Category cannot be empty.")
        self.rule.validate()
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValidationError("End date cannot be before start date.")
        if self.next_due_date < self.start_date:
            raise ValidationError("Next due date cannot be before start date.")
        return self

    # ── State ────────────────────────────────────────────────────────────────

    def is_ended(self, today: date) -> bool:
        return self.end_date is not None and today > self.end_date

    def status(self, today: date) -> ItemStatus:
        if self.is_ended(today):
            return ItemStatus.ENDED
        return ItemStatus.ACTIVE if self.is_active else ItemStatus.PAUSED

    def is_due(self, today: date) -> bool:
        return self.next_due_date <= today

    def should_generate(self, today: date) -> bool:
        return self.is_active and not self.is_ended(today) and self.is_due(today)

    def already_generated_on(self, today: date) -> bool:
        return self.last_generated_date == today

    def days_until_due(self, today: date) -> int:
        """Negative when overdue."""
        return (self.next_due_date - today).days

    # ── Transformations ──────────────────────────────────────────────────────

    def advanced(self, next_due_date: date, generated_on: date | None = None) -> "RecurringItem":
        """Record generation progress. next_due_date never moves backwards."""
        return replace(
            self,
            next_due_date=max(self.next_due_date, next_due_date),
            last_generated_date=generated_on if generated_on is not None else self.last_generated_date,
        )

    def paused(self) -> "RecurringItem":
        return replace(self, is_active=False)

    def resumed(self, today: date) -> "RecurringItem":
        """Reactivate from today forward; periods missed while paused are skipped."""
        if self.is_active:
            return self
        return replace(
            self,
            is_active=True,
            next_due_date=initial_due(self.start_date, self.rule, today),
        )

    def edited(self, today: date, **changes) -> "RecurringItem":
        """Apply field edits; a changed rule or start date reschedules the item."""
        if "amount" in changes:
            changes["amount"] = to_amount(changes["amount"])
        if "kind" in changes:
            changes["kind"] = _to_kind(changes["kind"])
        updated = replace(self, **changes)
        updated.rule.validate()
        if updated.rule != self.rule or updated.start_date != self.start_date:
            updated = updated.rescheduled(today)
        return updated.validate()

    def rescheduled(self, today: date) -> "RecurringItem":
        return replace(self, next_due_date=initial_due(self.start_date, self.rule, today))


def _to_kind(value) -> ItemKind:
    try:
        return ItemKind(value)
    except ValueError:
        raise ValidationError(f"Kind must be expense or income, got {value!r}.") from None
