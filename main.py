import logging
import os
import sys
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

import click

# Ensure project root is on sys.path when run directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from database.db_manager import DatabaseManager
from database.recurring_dao import RecurringDAO
from database.transaction_dao import TransactionDAO

from models.generation import GenerationPolicy, GenerationResult
from models.recurrence_rule import Frequency, RecurrenceRule
from models.recurring_item import ItemKind, RecurringItem
from services.recurring_service import RecurringService

from utils.app_config import (
    get_db_folder,
    get_log_dir,
    get_log_level,
    get_min_generation_interval,
)
from utils.clock import FixedClock, SystemClock
from utils.constants import (
    APP_NAME,
    DAYS_OF_WEEK,
    FREQUENCIES,
    ITEM_KINDS,
    LAST_DAY_OF_MONTH,
    LAST_GENERATION_SETTING,
    UPCOMING_DAYS,
)
from utils.date_helpers import format_timestamp, parse_timestamp
from utils.errors import ItemNotFoundError, ValidationError
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

DATE = click.DateTime(formats=["%Y-%m-%d"])


@dataclass
class App:
    db: DatabaseManager
    recurring_dao: RecurringDAO
    tx_dao: TransactionDAO
    service: RecurringService


# ── Helpers ──────────────────────────────────────────────────────────────────

def parse_weekday(value: str) -> int:
    """'1'..'7' or a day name such as 'mon'/'Monday'."""
    value = value.strip()
    if value.isdigit():
        return int(value)
    for i, name in enumerate(DAYS_OF_WEEK, start=1):
        if value[:3].lower() == name.lower():
            return i
    raise click.BadParameter(f"Unknown weekday: {value}")


def parse_day_of_month(value: str | None) -> int | None:
    if value is None:
        return None
    if value.strip().lower() == "last":
        return LAST_DAY_OF_MONTH
    try:
        return int(value)
    except ValueError:
        raise click.BadParameter(f"Day of month must be 1-31 or 'last', got {value}") from None


def resolve_item(app: App, ref: str) -> RecurringItem:
    """Look an item up by full id or unique id prefix."""
    item = app.service.get(ref)
    if item is not None:
        return item
    matches = [i for i in app.service.get_all() if i.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise click.ClickException(f"Ambiguous id prefix: {ref}")
    raise click.ClickException(str(ItemNotFoundError(ref)))


def format_item(item: RecurringItem, today) -> str:
    end = f" until {item.end_date}" if item.end_date else ""
    return (
        f"{item.id[:8]}  {item.title:<20} {item.kind.value:<7} {item.amount:>10}  "
        f"{item.category:<14} {item.rule.describe():<22} next {item.next_due_date}{end}  "
        f"[{item.status(today).value}]"
    )


def report_generation(result: GenerationResult):
    for occ in result.occurrences:
        click.echo(f"  + {occ.date}  {occ.kind.value:<7} {occ.amount:>10}  {occ.category}")
    for failure in result.failures:
        click.echo(f"  ! {failure.error}", err=True)
    if result.occurrences or result.failures:
        click.echo(
            f"Generated {len(result.occurrences)} transaction(s), "
            f"{len(result.failures)} failure(s)."
        )


def run_generation(app: App, throttled: bool) -> GenerationResult:
    now = datetime.combine(app.service.today(), datetime.now().time())
    policy = None
    if throttled:
        policy = GenerationPolicy(
            last_run_at=parse_timestamp(app.db.get_setting(LAST_GENERATION_SETTING)),
            min_interval=timedelta(minutes=get_min_generation_interval()),
        )
    result = app.service.generate_due(now, policy)
    # Failed passes do not start the throttle window.
    if not result.skipped and result.ok:
        app.db.set_setting(LAST_GENERATION_SETTING, format_timestamp(now))
    return result


# ── CLI ──────────────────────────────────────────────────────────────────────

@click.group(help=f"{APP_NAME}: recurring expenses and incomes.")
@click.option("--db-folder", type=click.Path(file_okay=False), default=None,
              help="Folder holding the database (default: config or CWD).")
@click.option("--today", "today_", type=DATE, default=None,
              help="Override today's date (YYYY-MM-DD).")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR.")
@click.option("--no-generate", is_flag=True, help="Skip the startup generation pass.")
@click.pass_context
def cli(ctx, db_folder, today_, log_level, no_generate):
    setup_logging(log_level, get_log_dir(), configured=get_log_level())

    # ── Database ─────────────────────────────────────────────────────────────
    db = DatabaseManager.open(db_folder or get_db_folder())
    ctx.call_on_close(db.close)

    # ── DAOs / services ──────────────────────────────────────────────────────
    recurring_dao = RecurringDAO(db)
    tx_dao = TransactionDAO(db)
    clock = FixedClock(today_.date()) if today_ else SystemClock()
    service = RecurringService(recurring_dao, tx_dao, clock)
    app = ctx.obj = App(db, recurring_dao, tx_dao, service)

    # ── Apply due recurring items ────────────────────────────────────────────
    if not no_generate and ctx.invoked_subcommand != "generate":
        report_generation(run_generation(app, throttled=True))


@cli.command()
@click.option("--kind", type=click.Choice(ITEM_KINDS), default="expense", show_default=True)
@click.option("--title", required=True)
@click.option("--amount", required=True)
@click.option("--category", required=True, help="Expense category or income source.")
@click.option("--frequency", type=click.Choice(FREQUENCIES), default="monthly", show_default=True)
@click.option("--interval", type=int, default=1, show_default=True, help="Days between occurrences (custom).")
@click.option("--weekday", "weekdays", multiple=True, help="Weekday for weekly items (1-7 or Mon..Sun); repeatable.")
@click.option("--day-of-month", default=None, help="1-31, or 'last' (monthly).")
@click.option("--start", type=DATE, default=None, help="Start date (default: today).")
@click.option("--end", type=DATE, default=None, help="Optional end date.")
@click.option("--note", default="")
@click.pass_obj
def add(app, kind, title, amount, category, frequency, interval, weekdays,
        day_of_month, start, end, note):
    """Create a recurring item."""
    rule = RecurrenceRule(
        frequency=Frequency(frequency),
        custom_interval_days=interval,
        weekdays=frozenset(parse_weekday(w) for w in weekdays) or None,
        day_of_month=parse_day_of_month(day_of_month),
    )
    try:
        item = app.service.create(
            kind=ItemKind(kind),
            title=title,
            amount=amount,
            category=category,
            rule=rule,
            start_date=start.date() if start else app.service.today(),
            end_date=end.date() if end else None,
            note=note,
        )
    except ValidationError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created {item.id} ({item.rule.describe()}), first due {item.next_due_date}")


@cli.command()
@click.argument("item_ref")
@click.option("--title", default=None)
@click.option("--amount", default=None)
@click.option("--category", default=None)
@click.option("--note", default=None)
@click.option("--frequency", type=click.Choice(FREQUENCIES), default=None)
@click.option("--interval", type=int, default=None)
@click.option("--weekday", "weekdays", multiple=True)
@click.option("--day-of-month", default=None)
@click.option("--start", type=DATE, default=None)
@click.option("--end", type=DATE, default=None)
@click.option("--clear-end", is_flag=True, help="Remove the end date.")
@click.pass_obj
def edit(app, item_ref, title, amount, category, note, frequency, interval,
         weekdays, day_of_month, start, end, clear_end):
    """Edit a recurring item. Changing the schedule recomputes its next due date."""
    item = resolve_item(app, item_ref)
    changes = {}
    for key, value in (("title", title), ("amount", amount), ("category", category), ("note", note)):
        if value is not None:
            changes[key] = value
    if start:
        changes["start_date"] = start.date()
    if clear_end:
        changes["end_date"] = None
    elif end:
        changes["end_date"] = end.date()

    if frequency or interval is not None or weekdays or day_of_month is not None:
        rule = item.rule
        if frequency:
            rule = replace(rule, frequency=Frequency(frequency))
        if interval is not None:
            rule = replace(rule, custom_interval_days=interval)
        if weekdays:
            rule = replace(rule, weekdays=frozenset(parse_weekday(w) for w in weekdays))
        if day_of_month is not None:
            rule = replace(rule, day_of_month=parse_day_of_month(day_of_month))
        changes["rule"] = rule

    if not changes:
        raise click.UsageError("Nothing to change.")
    try:
        updated = app.service.edit(item.id, **changes)
    except (ValidationError, ItemNotFoundError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(format_item(updated, app.service.today()))


@cli.command(name="list")
@click.option("--status", type=click.Choice(["all", "active", "paused", "ended"]),
              default="all", show_default=True)
@click.pass_obj
def list_items(app, status):
    """List recurring items."""
    items = {
        "all": app.service.get_all,
        "active": app.service.get_active,
        "paused": app.service.get_paused,
        "ended": app.service.get_ended,
    }[status]()
    if not items:
        click.echo("No recurring items.")
        return
    today = app.service.today()
    for item in items:
        click.echo(format_item(item, today))


@cli.command()
@click.option("--days", type=click.IntRange(min=0), default=UPCOMING_DAYS, show_default=True)
@click.pass_obj
def upcoming(app, days):
    """Active items due within the next DAYS days (overdue included)."""
    today = app.service.today()
    items = app.service.list_upcoming(days)
    if not items:
        click.echo(f"Nothing due in the next {days} day(s).")
        return
    for item in items:
        delta = item.days_until_due(today)
        label = "today" if delta == 0 else (
            "tomorrow" if delta == 1 else (
                f"in {delta} days" if delta > 0 else f"{-delta} day(s) overdue"
            )
        )
        click.echo(f"{item.next_due_date}  {label:<16} {item.title:<20} {item.kind.value:<7} {item.amount:>10}")


@cli.command()
@click.argument("item_ref")
@click.pass_obj
def pause(app, item_ref):
    """Pause a recurring item; nothing is generated while paused."""
    item = app.service.pause(resolve_item(app, item_ref).id)
    click.echo(f"Paused {item.title}")


@cli.command()
@click.argument("item_ref")
@click.pass_obj
def resume(app, item_ref):
    """Resume a paused item from today on; skipped periods are not generated."""
    item = app.service.resume(resolve_item(app, item_ref).id)
    click.echo(f"Resumed {item.title}, next due {item.next_due_date}")


@cli.command()
@click.argument("item_ref")
@click.confirmation_option(prompt="Delete this recurring item?")
@click.pass_obj
def delete(app, item_ref):
    """Delete a recurring item. Generated transactions are kept."""
    item = resolve_item(app, item_ref)
    app.service.delete(item.id)
    click.echo(f"Deleted {item.title}")


@cli.command()
@click.pass_obj
def generate(app):
    """Generate every due occurrence now, ignoring the throttle."""
    result = run_generation(app, throttled=False)
    report_generation(result)
    if not result.occurrences and not result.failures:
        click.echo("Nothing due.")
    if result.failures:
        sys.exit(1)


@cli.command()
@click.argument("item_ref")
@click.pass_obj
def history(app, item_ref):
    """Transactions generated from a recurring item."""
    item = resolve_item(app, item_ref)
    txs = app.tx_dao.get_by_recurring_item(item.id)
    if not txs:
        click.echo("No transactions generated yet.")
        return
    for tx in txs:
        click.echo(f"{tx.id:>5}  {tx.date}  {tx.type:<7} {tx.amount:>10}  {tx.category}  {tx.description}")


def main():
    cli(prog_name="recur-ledger")


if __name__ == "__main__":
    main()
