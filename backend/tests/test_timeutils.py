from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fnstats.timeutils import (
    DAY_SECONDS,
    end_of_day_utc,
    format_time,
    last_time_window,
    midnight_utc,
    parse_time,
    tomorrow_midnight_utc,
)

NOW = datetime(2024, 6, 15, 12, 30, tzinfo=timezone.utc)


def test_day_boundaries() -> None:
    assert midnight_utc(1718454600) == 1718409600
    assert end_of_day_utc(1718454600) == 1718409600 + DAY_SECONDS - 1
    assert tomorrow_midnight_utc(NOW) == 1718496000


def test_last_time_window_ends_tonight() -> None:
    window = last_time_window(2, "week", now=NOW)

    assert window["end_time"] == 1718496000
    assert window["end_time"] - window["start_time"] == 14 * DAY_SECONDS


def test_last_time_window_rejects_bad_input() -> None:
    with pytest.raises(ValueError):
        last_time_window(1, "fortnight", now=NOW)
    with pytest.raises(ValueError):
        last_time_window(0, "day", now=NOW)


def test_format_time() -> None:
    assert format_time(1508889600) == "Oct 25, 2017, 00:00:00 UTC"


def test_parse_time_accepts_epoch_and_iso() -> None:
    assert parse_time("1718150400") == 1718150400
    assert parse_time("2024-06-12") == 1718150400
    assert parse_time("2024-06-12T00:00:00Z") == 1718150400
    assert parse_time("2024-06-12T02:00:00+02:00") == 1718150400
    with pytest.raises(ValueError):
        parse_time("yesterday")
    with pytest.raises(ValueError):
        parse_time("  ")
