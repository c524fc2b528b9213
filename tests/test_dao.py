import datetime as dt
from dataclasses import replace
from decimal import Decimal

from models.recurrence_rule import RecurrenceRule
from models.recurring_item import ItemKind, RecurringItem
from models.transaction import Origin

D = dt.date


def make_item(rule, start=D(2024, 1, 1), today=D(2024, 1, 1), **kwargs):
    return RecurringItem.create(
        kind=kwargs.pop("kind", "expense"),
        title=kwargs.pop("title", "Rent"),
        amount=kwargs.pop("amount", "1200.00"),
        category=kwargs.pop("category", "Rent/Mortgage"),
        rule=rule,
        start_date=start,
        today=today,
        **kwargs,
    )


# -----------------------------
# RecurringDAO
# -----------------------------
def test_save_and_get_preserves_every_field(recurring_dao):
    item = make_item(RecurrenceRule.monthly(32), end_date=D(2024, 12, 31), note="landlord")
    item = item.advanced(D(2024, 2, 29), generated_on=D(2024, 1, 31)).paused()
    recurring_dao.save(item)

    loaded = recurring_dao.get(item.id)
    assert loaded == item
    assert loaded.rule.day_of_month == 32
    assert loaded.amount == Decimal("1200.00")
    assert loaded.is_active is False


def test_weekdays_round_trip(recurring_dao):
    item = make_item(RecurrenceRule.weekly({5, 1, 3}))
    recurring_dao.save(item)
    assert recurring_dao.get(item.id).rule.weekdays == frozenset({1, 3, 5})


def test_save_updates_existing_row(recurring_dao):
    item = make_item(RecurrenceRule.daily())
    recurring_dao.save(item)
    recurring_dao.save(replace(item, title="Rent (new flat)"))
    assert len(recurring_dao.get_all()) == 1
    assert recurring_dao.get(item.id).title == "Rent (new flat)"


def test_get_unknown_returns_none(recurring_dao):
    assert recurring_dao.get("missing") is None


def test_delete(recurring_dao):
    item = make_item(RecurrenceRule.daily())
    recurring_dao.save(item)
    assert recurring_dao.delete(item.id) is True
    assert recurring_dao.delete(item.id) is False
    assert recurring_dao.get(item.id) is None


def test_list_active_due_filters(recurring_dao):
    today = D(2024, 1, 10)
    due = make_item(RecurrenceRule.daily(), title="due")
    paused = make_item(RecurrenceRule.daily(), title="paused").paused()
    future = make_item(RecurrenceRule.daily(), start=D(2024, 2, 1), title="future")
    ended = make_item(RecurrenceRule.daily(), end_date=D(2024, 1, 9), title="ended")
    ends_today = make_item(RecurrenceRule.daily(), end_date=today, title="ends today")
    for item in (due, paused, future, ended, ends_today):
        recurring_dao.save(item)

    titles = {i.title for i in recurring_dao.list_active_due(today)}
    assert titles == {"due", "ends today"}


# -----------------------------
# TransactionDAO
# -----------------------------
def test_create_expense_and_income(tx_dao):
    exp_id = tx_dao.create_expense(Decimal("9.99"), "Food & Dining", D(2024, 1, 5), "lunch",
                                   Origin.RECURRING, None)
    inc_id = tx_dao.create_income(Decimal("3000"), "Salary", D(2024, 1, 31), "January pay")

    exp = tx_dao.get_by_id(exp_id)
    assert exp.type == "expense"
    assert exp.amount == Decimal("9.99")
    assert exp.category == "Food & Dining"
    assert exp.date == "2024-01-05"
    assert exp.description == "lunch"
    assert exp.origin is Origin.RECURRING

    inc = tx_dao.get_by_id(inc_id)
    assert inc.type == "income"
    assert inc.category == "Salary"


def test_expense_total_for_month(tx_dao):
    tx_dao.create("expense", "10.10", "2024-01-05", "Food")
    tx_dao.create("expense", "0.20", "2024-01-31", "Transport")
    tx_dao.create("expense", "99", "2024-02-01", "Food")
    tx_dao.create("income", "500", "2024-01-15", "Salary")
    assert tx_dao.get_expense_total_for_month("2024-01") == Decimal("10.30")
    assert tx_dao.get_expense_total_for_month("2024-01", category="Food") == Decimal("10.10")
    assert tx_dao.get_expense_total_for_month("2023-12") == Decimal("0")


def test_deleting_item_keeps_generated_transactions(recurring_dao, tx_dao):
    item = make_item(RecurrenceRule.daily())
    recurring_dao.save(item)
    tx_id = tx_dao.create_expense(item.amount, item.category, D(2024, 1, 1), link_id=item.id)
    assert [t.id for t in tx_dao.get_by_recurring_item(item.id)] == [tx_id]

    recurring_dao.delete(item.id)
    tx = tx_dao.get_by_id(tx_id)
    assert tx is not None
    assert tx.recurring_item_id is None


def test_settings(db):
    assert db.get_setting("last_generation_at") == ""
    db.set_setting("last_generation_at", "2024-01-01T08:00:00")
    assert db.get_setting("last_generation_at") == "2024-01-01T08:00:00"
    assert db.get_setting("missing", "fallback") == "fallback"
