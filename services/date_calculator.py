"""Pure date arithmetic for recurrence rules.

next_occurrence() is exclusive of the reference date and drives catch-up
generation. initial_due() is inclusive and is used when an item is created
or resumed.
"""
from datetime import date, timedelta
from typing import Iterator

from models.recurrence_rule import Frequency, RecurrenceRule
from utils.constants import WEEKDAY_SCAN_LIMIT
from utils.date_helpers import (
    add_months,
    add_years,
    clamp_day_to_month,
    iso_weekday_after,
    month_after,
)


def next_occurrence(reference: date, rule: RecurrenceRule) -> date:
    """Return the occurrence that follows `reference` under `rule`."""
    freq = rule.frequency
    if freq == Frequency.DAILY:
        return reference + timedelta(days=1)
    if freq == Frequency.CUSTOM:
        return reference + timedelta(days=rule.custom_interval_days)
    if freq == Frequency.WEEKLY:
        if rule.has_weekdays:
            found = iso_weekday_after(reference, rule.weekdays, limit=WEEKDAY_SCAN_LIMIT)
            if found is not None:
                return found
        return reference + timedelta(days=7)
    if freq == Frequency.MONTHLY:
        return add_months(reference, 1, rule.day_of_month)
    if freq == Frequency.YEARLY:
        return add_years(reference, 1)
    raise ValueError(f"Unsupported frequency: {freq}")


def initial_due(start: date, rule: RecurrenceRule, today: date) -> date:
    """First due date for an item starting on `start`, evaluated on `today`.

    A future start is its own due date, moved forward to the first day that
    satisfies a weekday or day-of-month constraint. Otherwise the search runs
    forward from today, and today itself counts.
    """
    if start > today:
        if rule.frequency == Frequency.WEEKLY and rule.has_weekdays:
            return _first_weekday_on_or_after(start, rule.weekdays)
        if rule.frequency == Frequency.MONTHLY and rule.day_of_month is not None:
            return _first_monthly_on_or_after(rule.day_of_month, start)
        return start

    freq = rule.frequency
    if freq == Frequency.DAILY:
        return today
    if freq == Frequency.WEEKLY:
        weekdays = rule.weekdays if rule.has_weekdays else {start.isoweekday()}
        return _first_weekday_on_or_after(today, weekdays)
    if freq == Frequency.MONTHLY:
        return _first_monthly_on_or_after(rule.day_of_month or start.day, today)
    if freq == Frequency.YEARLY:
        return _first_yearly_on_or_after(start.month, start.day, today)
    if freq == Frequency.CUSTOM:
        return _first_interval_on_or_after(start, rule.custom_interval_days, today)
    raise ValueError(f"Unsupported frequency: {freq}")


def occurrences_between(
    rule: RecurrenceRule, first_due: date, start: date, end: date
) -> Iterator[date]:
    """Yield every occurrence in [start, end], stepping from `first_due`."""
    current = first_due
    while current <= end:
        if current >= start:
            yield current
        current = next_occurrence(current, rule)


# ── Inclusive searches ───────────────────────────────────────────────────────

def _first_weekday_on_or_after(from_date: date, weekdays) -> date:
    found = iso_weekday_after(from_date, weekdays, inclusive=True, limit=7)
    return found if found is not None else from_date


def _first_monthly_on_or_after(target_day: int, from_date: date) -> date:
    y, m = from_date.year, from_date.month
    effective = clamp_day_to_month(y, m, target_day)
    if effective >= from_date.day:
        return date(y, m, effective)
    y, m = month_after(y, m)
    return date(y, m, clamp_day_to_month(y, m, target_day))


def _first_yearly_on_or_after(target_month: int, target_day: int, from_date: date) -> date:
    y = from_date.year
    candidate = date(y, target_month, clamp_day_to_month(y, target_month, target_day))
    if candidate < from_date:
        y += 1
        candidate = date(y, target_month, clamp_day_to_month(y, target_month, target_day))
    return candidate


def _first_interval_on_or_after(anchor: date, interval: int, from_date: date) -> date:
    """First date in the anchor + k*interval series that is >= from_date."""
    if from_date <= anchor:
        return anchor
    n = (from_date - anchor).days // interval
    candidate = anchor + timedelta(days=n * interval)
    if candidate < from_date:
        candidate += timedelta(days=interval)
    return candidate
