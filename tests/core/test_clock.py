from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.core.clock import parse_iso, to_iso


def test_to_iso_millisecond_utc_shape() -> None:
    dt = datetime(2026, 10, 18, 9, 30, 0, 987654, tzinfo=timezone.utc)
    assert to_iso(dt) == "2026-10-18T09:30:00.987Z"


def test_to_iso_converts_offsets_to_utc() -> None:
    dt = datetime(2026, 10, 18, 11, 30, tzinfo=timezone(timedelta(hours=2)))
    assert to_iso(dt) == "2026-10-18T09:30:00.000Z"


def test_to_iso_treats_naive_as_utc() -> None:
    assert to_iso(datetime(2026, 1, 1)) == "2026-01-01T00:00:00.000Z"


def test_parse_iso_round_trip() -> None:
    text = "2026-10-18T09:30:00.123Z"
    assert to_iso(parse_iso(text)) == text


def test_parse_iso_accepts_date_only() -> None:
    assert parse_iso("2026-10-18") == datetime(2026, 10, 18, tzinfo=timezone.utc)


def test_parse_iso_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        parse_iso("next tuesday")
