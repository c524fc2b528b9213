import datetime as dt

import pytest

from database.db_manager import DatabaseManager
from database.recurring_dao import RecurringDAO
from database.transaction_dao import TransactionDAO
from services.recurring_service import RecurringService
from utils.clock import FixedClock


@pytest.fixture
def db():
    manager = DatabaseManager(":memory:")
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture
def recurring_dao(db):
    return RecurringDAO(db)


@pytest.fixture
def tx_dao(db):
    return TransactionDAO(db)


@pytest.fixture
def clock():
    return FixedClock(dt.date(2024, 1, 1))


@pytest.fixture
def service(recurring_dao, tx_dao, clock):
    return RecurringService(recurring_dao, tx_dao, clock)


class FlakySink:
    """Wraps a real sink and raises for chosen due dates."""

    def __init__(self, inner, fail_on=()):
        self.inner = inner
        self.fail_on = set(fail_on)
        self.calls = []

    def create_expense(self, amount, category, date, note="", origin=None, link_id=None):
        self.calls.append(("expense", date))
        if date in self.fail_on:
            raise IOError(f"disk full while writing {date}")
        return self.inner.create_expense(amount, category, date, note, origin, link_id)

    def create_income(self, amount, source, date, description="", origin=None, link_id=None):
        self.calls.append(("income", date))
        if date in self.fail_on:
            raise IOError(f"disk full while writing {date}")
        return self.inner.create_income(amount, source, date, description, origin, link_id)


@pytest.fixture
def flaky_sink(tx_dao):
    return FlakySink(tx_dao)
