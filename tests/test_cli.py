"""
Tests for the command line interface.
"""

import pytest
from typer.testing import CliRunner

from freeslots import __version__
from freeslots.cli.app import app

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "freeslots.yaml"
    path.write_text(
        "data_file: data.json\n"
        "owners:\n"
        "  - name: alice\n"
        "    owner_id: u-alice\n",
        encoding="utf-8",
    )
    return path


def invoke(config_path, *args):
    return runner.invoke(app, ["--config", str(config_path), *args])


def test_version(config_path):
    result = invoke(config_path, "version")

    assert result.exit_code == 0
    assert __version__ in result.output


def test_book_and_find_slots(config_path):
    assert invoke(config_path, "calendar", "create", "alice").exit_code == 0
    assert invoke(config_path, "rule", "add", "alice", "monday", "09:00", "17:00").exit_code == 0

    booked = invoke(config_path, "book", "alice", "ex-1", "2024-11-25T12:00", "2024-11-25T13:00")
    assert booked.exit_code == 0, booked.output

    result = invoke(config_path, "slots", "alice", "--start", "2024-11-25", "--end", "2024-11-25")

    assert result.exit_code == 0, result.output
    assert "2 free slot(s) for u-alice" in result.output
    assert "09:00 - 12:00" in result.output
    assert "13:00 - 17:00" in result.output


def test_conflicting_booking_exits_with_error(config_path):
    first = invoke(config_path, "book", "alice", "ex-1", "2024-11-25T12:00", "2024-11-25T13:00")
    second = invoke(config_path, "book", "alice", "ex-2", "2024-11-25T12:30", "2024-11-25T13:30")

    assert first.exit_code == 0
    assert second.exit_code == 1
    assert "overlaps" in second.output


def test_rule_list_and_calendar_show(config_path):
    invoke(config_path, "calendar", "create", "alice")
    invoke(config_path, "rule", "add", "alice", "tue", "08:00", "12:00")

    listed = invoke(config_path, "rule", "list", "alice", "--day", "tuesday")
    shown = invoke(config_path, "calendar", "show", "alice")

    assert listed.exit_code == 0
    assert "Tuesday" in listed.output
    assert shown.exit_code == 0
    assert "u-alice" in shown.output


def test_invalid_rule_exits_with_error(config_path):
    invoke(config_path, "calendar", "create", "alice")

    result = invoke(config_path, "rule", "add", "alice", "monday", "17:00", "09:00")

    assert result.exit_code == 1
    assert "Error" in result.output


def test_compact_dates_match_dashed_dates(config_path):
    invoke(config_path, "calendar", "create", "alice")
    invoke(config_path, "rule", "add", "alice", "monday", "09:00", "17:00")

    dashed = invoke(config_path, "slots", "alice", "--start", "2024-11-25", "--end", "2024-11-25")
    compact = invoke(config_path, "slots", "alice", "--start", "20241125", "--end", "20241125")

    assert compact.exit_code == 0, compact.output
    assert "1 free slot(s) for u-alice" in compact.output
    assert "09:00 - 17:00" in compact.output
    assert compact.output == dashed.output


@pytest.mark.parametrize("value", ["P1D", "12:00", "not-a-date"])
def test_non_date_values_are_rejected(config_path, value):
    result = invoke(config_path, "slots", "alice", "--start", value)

    assert result.exit_code == 1
    assert "Error" in result.output


def test_slots_without_calendar(config_path):
    result = invoke(config_path, "slots", "bob", "--start", "2024-11-25")

    assert result.exit_code == 1
    assert "not found" in result.output


def test_missing_config_file(tmp_path):
    result = runner.invoke(app, ["--config", str(tmp_path / "nope.yaml"), "version"])

    assert result.exit_code == 1
