import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.timestamps import day_end, day_start, normalize_timestamp, to_iso


EXPECTED = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "value",
    [
        EXPECTED,
        datetime(2024, 3, 1, 12, 0),
        datetime(2024, 3, 1, 13, 0, tzinfo=timezone(timedelta(hours=1))),
        "2024-03-01T12:00:00Z",
        "2024-03-01T12:00:00+00:00",
        EXPECTED.timestamp(),
        {"seconds": int(EXPECTED.timestamp()), "nanoseconds": 0},
        {"_seconds": int(EXPECTED.timestamp())},
        SimpleNamespace(seconds=int(EXPECTED.timestamp()), nanoseconds=0),
    ],
)
def test_normalize_timestamp_accepts_every_shape(value):
    assert normalize_timestamp(value) == EXPECTED


@pytest.mark.parametrize("value", [None, "", "   ", "not a date", True, {}, object()])
def test_normalize_timestamp_rejects_unreadable_input(value):
    assert normalize_timestamp(value) is None


def test_bare_date_becomes_midnight_utc():
    assert normalize_timestamp(date(2024, 3, 1)) == datetime(2024, 3, 1, tzinfo=timezone.utc)


def test_day_end_covers_the_whole_day():
    end = day_end(date(2024, 3, 1))
    assert end.date() == date(2024, 3, 1)
    assert end > datetime(2024, 3, 1, 23, 59, 59, tzinfo=timezone.utc)
    assert day_end("2024-03-01") == end
    assert day_end(EXPECTED) == EXPECTED


def test_day_start_of_date_string():
    assert day_start("2024-03-01") == datetime(2024, 3, 1, tzinfo=timezone.utc)


def test_to_iso():
    assert to_iso(EXPECTED) == "2024-03-01T12:00:00+00:00"
    assert to_iso(None) is None
