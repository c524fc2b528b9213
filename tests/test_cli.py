import logging
import re

import pytest
from click.testing import CliRunner

from database.db_manager import DatabaseManager
from database.transaction_dao import TransactionDAO
from main import cli, parse_day_of_month, parse_weekday
from utils import app_config
from utils.constants import LAST_GENERATION_SETTING
from utils.logging_config import HANDLER_PREFIX


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    config_dir = tmp_path / "cfg"
    monkeypatch.setattr(app_config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(app_config, "CONFIG_FILE", config_dir / "config.json")
    monkeypatch.delenv("RECUR_LEDGER_LOG_LEVEL", raising=False)
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if (handler.get_name() or "").startswith(HANDLER_PREFIX):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def run(tmp_path):
    runner = CliRunner()
    db_folder = tmp_path / "data"

    def invoke(today, *args):
        base = ["--db-folder", str(db_folder), "--log-level", "WARNING", "--today", today]
        return runner.invoke(cli, base + list(args))

    invoke.db_folder = db_folder
    return invoke


def add_coffee(run, today="2024-01-01"):
    result = run(today, "add", "--title", "Coffee", "--amount", "4.50",
                 "--category", "Food", "--frequency", "daily")
    assert result.exit_code == 0, result.output
    return re.search(r"Created ([0-9a-f]{32})", result.output).group(1)


# -----------------------------
# argument helpers
# -----------------------------
@pytest.mark.parametrize("value,expected", [("1", 1), ("mon", 1), ("Friday", 5), (" sun ", 7)])
def test_parse_weekday(value, expected):
    assert parse_weekday(value) == expected


@pytest.mark.parametrize("value,expected", [(None, None), ("15", 15), ("last", 32), ("LAST", 32)])
def test_parse_day_of_month(value, expected):
    assert parse_day_of_month(value) == expected


# -----------------------------
# commands
# -----------------------------
def test_add_reports_first_due(run):
    result = run("2024-01-10", "add", "--title", "Rent", "--amount", "1200",
                 "--category", "Housing", "--day-of-month", "last")
    assert result.exit_code == 0, result.output
    assert "(Monthly (last day)), first due 2024-01-31" in result.output


def test_add_rejects_invalid_amount(run):
    result = run("2024-01-01", "add", "--title", "Bad", "--amount", "-5", "--category", "Food")
    assert result.exit_code == 1
    assert "Amount must be positive." in result.output


def test_generate_and_startup_catch_up(run):
    item_id = add_coffee(run)

    result = run("2024-01-01", "generate")
    assert result.exit_code == 0, result.output
    assert "Generated 1 transaction(s), 0 failure(s)." in result.output

    result = run("2024-01-01", "generate")
    assert "Nothing due." in result.output

    # startup pass catches up 2024-01-02..05 before listing
    result = run("2024-01-05", "list")
    assert result.exit_code == 0, result.output
    assert "Generated 4 transaction(s), 0 failure(s)." in result.output
    assert "next 2024-01-06" in result.output

    result = run("2024-01-05", "history", item_id[:8])
    dates = re.findall(r"2024-01-0\d", result.output)
    assert dates == ["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04", "2024-01-05"]

    db = DatabaseManager.open(str(run.db_folder))
    try:
        assert db.get_setting(LAST_GENERATION_SETTING).startswith("2024-01-05T")
    finally:
        db.close()


def test_no_generate_skips_startup_pass(run):
    add_coffee(run)
    result = run("2024-01-03", "--no-generate", "list")
    assert result.exit_code == 0, result.output
    assert "Generated" not in result.output
    assert "next 2024-01-01" in result.output


def test_pause_upcoming_resume(run):
    item_id = add_coffee(run)
    prefix = item_id[:8]

    result = run("2024-01-01", "pause", prefix)
    assert result.exit_code == 0, result.output
    assert "Paused Coffee" in result.output

    result = run("2024-01-10", "upcoming")
    assert "Generated" not in result.output
    assert "Nothing due in the next 7 day(s)." in result.output

    result = run("2024-01-10", "list", "--status", "paused")
    assert "[paused]" in result.output

    result = run("2024-01-10", "resume", prefix)
    assert "Resumed Coffee, next due 2024-01-10" in result.output

    result = run("2024-01-10", "upcoming", "--days", "0")
    assert "today" in result.output
    assert "Coffee" in result.output

    result = run("2024-01-10", "generate")
    assert "Generated 1 transaction(s), 0 failure(s)." in result.output


def test_edit_changes_schedule(run):
    item_id = add_coffee(run)
    result = run("2024-01-01", "edit", item_id, "--frequency", "weekly", "--weekday", "fri",
                 "--amount", "5")
    assert result.exit_code == 0, result.output
    assert "Weekly on Fri" in result.output
    assert "next 2024-01-05" in result.output


@pytest.mark.parametrize(
    "args,message",
    [
        (["--frequency", "custom", "--interval", "0"], "Custom interval must be at least 1 day."),
        (["--frequency", "monthly", "--day-of-month=-1"], "Day of month must be between"),
    ],
)
def test_edit_rejects_invalid_rule(run, args, message):
    item_id = add_coffee(run)
    result = run("2024-01-05", "edit", item_id, *args)
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert message in result.output


def test_edit_requires_a_change(run):
    item_id = add_coffee(run)
    result = run("2024-01-01", "edit", item_id)
    assert result.exit_code == 2
    assert "Nothing to change." in result.output


def test_delete_requires_confirmation(run):
    item_id = add_coffee(run)
    run("2024-01-01", "generate")

    result = run("2024-01-01", "delete", item_id)
    assert result.exit_code == 1   # aborted at the confirmation prompt

    result = run("2024-01-01", "delete", item_id, "--yes")
    assert result.exit_code == 0, result.output
    assert "Deleted Coffee" in result.output

    result = run("2024-01-01", "list")
    assert "No recurring items." in result.output

    result = run("2024-01-01", "history", item_id)
    assert result.exit_code == 1
    assert item_id in result.output


def test_unknown_item_reference(run):
    result = run("2024-01-01", "pause", "deadbeef")
    assert result.exit_code == 1
    assert "deadbeef" in result.output


def test_failed_startup_pass_is_retried_by_next_invocation(run, monkeypatch):
    add_coffee(run)
    working = TransactionDAO.create_expense

    def disk_full(self, *args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(TransactionDAO, "create_expense", disk_full)
    result = run("2024-01-03", "list")
    assert result.exit_code == 0, result.output
    assert "Generated 0 transaction(s), 1 failure(s)." in result.output

    monkeypatch.setattr(TransactionDAO, "create_expense", working)
    result = run("2024-01-03", "list")
    assert "Generated 3 transaction(s), 0 failure(s)." in result.output
    assert "next 2024-01-04" in result.output
