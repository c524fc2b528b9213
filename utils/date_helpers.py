from datetime import date, datetime, timedelta
import calendar
from utils.constants import DATE_FORMAT, TIMESTAMP_FORMAT, LAST_DAY_OF_MONTH


def today() -> date:
    return date.today()


def parse_date(date_str: str) -> date | None:
    """Parse a date string in YYYY-MM-DD format, returning None on failure."""
    if not date_str:
        return None
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue
    return None


def format_date(d: date) -> str:
    return d.strftime(DATE_FORMAT)


def parse_timestamp(value: str) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        return None


def format_timestamp(dt: datetime) -> str:
    return dt.strftime(TIMESTAMP_FORMAT)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """Clamp day to valid range for the given year/month.
    day == 32 means last day of month."""
    max_day = days_in_month(year, month)
    if day == LAST_DAY_OF_MONTH:
        return max_day
    return min(day, max_day)


def month_after(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def add_months(d: date, n: int, target_day: int | None = None) -> date:
    """Add n months to date d, clamping the day to month end.

    target_day overrides d.day (1-31, or 32 for the last day).
    """
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    day = clamp_day_to_month(year, month, target_day or d.day)
    return date(year, month, day)


def add_years(d: date, n: int) -> date:
    """Same month/day n years later; Feb 29 falls back to Feb 28."""
    year = d.year + n
    return date(year, d.month, clamp_day_to_month(year, d.month, d.day))


def iso_weekday_after(d: date, weekdays, inclusive: bool = False,
                      limit: int = 8) -> date | None:
    """First date on/after d (after d unless inclusive) whose ISO weekday is
    in weekdays. Searches at most `limit` days."""
    current = d if inclusive else d + timedelta(days=1)
    for _ in range(limit):
        if current.isoweekday() in weekdays:
            return current
        current += timedelta(days=1)
    return None
