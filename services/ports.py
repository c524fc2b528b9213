"""Collaborator interfaces the recurring services depend on.

RecurringDAO, TransactionDAO and the clocks in utils.clock satisfy these
structurally; tests substitute their own fakes.
"""
from datetime import date
from typing import Optional, Protocol

from models.recurring_item import RecurringItem
from models.transaction import Origin


class ItemRepository(Protocol):
    def list_active_due(self, today: date) -> list[RecurringItem]: ...

    def get_all(self) -> list[RecurringItem]: ...

    def get(self, item_id: str) -> Optional[RecurringItem]: ...

    def save(self, item: RecurringItem) -> RecurringItem: ...

    def delete(self, item_id: str) -> bool: ...


class TransactionSink(Protocol):
    def create_expense(self, amount, category: str, date, note: str = "",
                       origin: Origin = Origin.RECURRING, link_id: str | None = None): ...

    def create_income(self, amount, source: str, date, description: str = "",
                      origin: Origin = Origin.RECURRING, link_id: str | None = None): ...


class Clock(Protocol):
    def today(self) -> date: ...
