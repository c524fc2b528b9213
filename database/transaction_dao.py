from datetime import date as date_type
from decimal import Decimal
from typing import Optional
from database.db_manager import DatabaseManager
from models.transaction import Origin, Transaction
from utils.date_helpers import format_date


class TransactionDAO:
    """sqlite-backed transaction store; also the sink for generated occurrences."""

    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Transaction:
        return Transaction(
            id=row["id"],
            type=row["type"],
            amount=Decimal(row["amount"]),
            category=row["category"],
            description=row["description"],
            date=row["date"],
            origin=Origin(row["origin"]),
            recurring_item_id=row["recurring_item_id"],
            created_at=row["created_at"],
        )

    def get_by_id(self, tx_id: int) -> Optional[Transaction]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM transactions WHERE id = ?", (tx_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_by_recurring_item(self, item_id: str) -> list[Transaction]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM transactions WHERE recurring_item_id = ? ORDER BY date ASC, id ASC",
            (item_id,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_expense_total_for_month(self, month: str, category: str | None = None) -> Decimal:
        """Sum of expenses in a YYYY-MM month, optionally for one category."""
        conn = self._db.get_connection()
        sql = "SELECT amount FROM transactions WHERE type = 'expense' AND substr(date, 1, 7) = ?"
        params: list = [month]
        if category is not None:
            sql += " AND category = ?"
            params.append(category)
        rows = conn.execute(sql, params).fetchall()
        return sum((Decimal(r["amount"]) for r in rows), Decimal("0"))

    def create(
        self,
        type_: str,
        amount,
        date,
        category: str,
        description: str = "",
        origin: Origin = Origin.MANUAL,
        recurring_item_id: str | None = None,
    ) -> Transaction:
        if isinstance(date, date_type):
            date = format_date(date)
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO transactions
               (type, amount, category, description, date, origin, recurring_item_id)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                type_, str(amount), category, description or "", date,
                Origin(origin).value, recurring_item_id,
            ),
        )
        conn.commit()
        return self.get_by_id(cursor.lastrowid)

    # ── Sink interface ───────────────────────────────────────────────────────

    def create_expense(
        self,
        amount,
        category: str,
        date,
        note: str = "",
        origin: Origin = Origin.RECURRING,
        link_id: str | None = None,
    ) -> int:
        return self.create("expense", amount, date, category, note, origin, link_id).id

    def create_income(
        self,
        amount,
        source: str,
        date,
        description: str = "",
        origin: Origin = Origin.RECURRING,
        link_id: str | None = None,
    ) -> int:
        return self.create("income", amount, date, source, description, origin, link_id).id
