from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from database.db_manager import DatabaseManager
from models.recurrence_rule import RecurrenceRule
from models.recurring_item import ItemKind, RecurringItem
from utils.date_helpers import format_date, parse_date


class RecurringDAO:
    """sqlite-backed store of recurring items."""

    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> RecurringItem:
        weekdays = None
        if row["weekdays"]:
            weekdays = frozenset(int(d) for d in row["weekdays"].split(","))
        return RecurringItem(
            id=row["id"],
            kind=ItemKind(row["kind"]),
            title=row["title"],
            amount=Decimal(row["amount"]),
            category=row["category"],
            note=row["note"],
            rule=RecurrenceRule(
                frequency=row["frequency"],
                custom_interval_days=row["custom_interval_days"],
                weekdays=weekdays,
                day_of_month=row["day_of_month"],
            ),
            start_date=parse_date(row["start_date"]),
            end_date=parse_date(row["end_date"]),
            next_due_date=parse_date(row["next_due_date"]),
            last_generated_date=parse_date(row["last_generated_date"]),
            is_active=bool(row["is_active"]),
            created_at=_parse_created_at(row["created_at"]),
        )

    def _to_params(self, item: RecurringItem) -> tuple:
        rule = item.rule
        weekdays = ",".join(str(d) for d in sorted(rule.weekdays)) if rule.weekdays else None
        return (
            item.id, item.kind.value, item.title, str(item.amount), item.category,
            item.note, rule.frequency.value, rule.custom_interval_days, weekdays,
            rule.day_of_month, format_date(item.start_date),
            format_date(item.end_date) if item.end_date else None,
            format_date(item.next_due_date),
            format_date(item.last_generated_date) if item.last_generated_date else None,
            1 if item.is_active else 0,
            item.created_at.isoformat(sep=" ", timespec="seconds"),
        )

    def get_all(self) -> list[RecurringItem]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM recurring_items ORDER BY title, id"
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def list_active_due(self, today: date) -> list[RecurringItem]:
        """Active, non-ended items whose next due date is on or before today."""
        ref = format_date(today)
        conn = self._db.get_connection()
        rows = conn.execute(
            """SELECT * FROM recurring_items
               WHERE is_active = 1
                 AND next_due_date <= ?
                 AND (end_date IS NULL OR end_date >= ?)
               ORDER BY next_due_date, title, id""",
            (ref, ref),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get(self, item_id: str) -> Optional[RecurringItem]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM recurring_items WHERE id = ?", (item_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def save(self, item: RecurringItem) -> RecurringItem:
        """Insert or replace every column of the item."""
        conn = self._db.get_connection()
        conn.execute(
            """INSERT INTO recurring_items
               (id, kind, title, amount, category, note, frequency,
                custom_interval_days, weekdays, day_of_month, start_date,
                end_date, next_due_date, last_generated_date, is_active,
                created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                 kind=excluded.kind, title=excluded.title,
                 amount=excluded.amount, category=excluded.category,
                 note=excluded.note, frequency=excluded.frequency,
                 custom_interval_days=excluded.custom_interval_days,
                 weekdays=excluded.weekdays, day_of_month=excluded.day_of_month,
                 start_date=excluded.start_date, end_date=excluded.end_date,
                 next_due_date=excluded.next_due_date,
                 last_generated_date=excluded.last_generated_date,
                 is_active=excluded.is_active""",
            self._to_params(item),
        )
        conn.commit()
        return item

    def delete(self, item_id: str) -> bool:
        conn = self._db.get_connection()
        cursor = conn.execute("DELETE FROM recurring_items WHERE id = ?", (item_id,))
        conn.commit()
        return cursor.rowcount > 0


def _parse_created_at(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return datetime.now().replace(microsecond=0)
