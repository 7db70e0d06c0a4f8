# tests/test_duration.py

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from homban.board.duration import Duration, DurationParseError


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_parse_all_units_in_order() -> None:
    d = Duration.parse("1y2ha3q4mo5w6d7h8m9s")
    assert d == Duration(
        years=1, half_years=2, quarters=3, months=4, weeks=5, days=6, hours=7, minutes=8, seconds=9
    )


def test_parse_is_case_insensitive_and_accepts_long_names() -> None:
    assert Duration.parse("2 Weeks 3 DAYS") == Duration(weeks=2, days=3)
    assert Duration.parse("1 quarter") == Duration(quarters=1)
    assert Duration.parse("1HA") == Duration(half_years=1)


def test_parse_distinguishes_month_from_minute_and_halfyear_from_hour() -> None:
    assert Duration.parse("5mo") == Duration(months=5)
    assert Duration.parse("5m") == Duration(minutes=5)
    assert Duration.parse("1ha") == Duration(half_years=1)
    assert Duration.parse("1h") == Duration(hours=1)


@pytest.mark.parametrize("text", ["", "   ", "abc", "1x", "1d1y", "d", "-1d"])
def test_parse_rejects_invalid_text(text: str) -> None:
    with pytest.raises(DurationParseError):
        Duration.parse(text)


def test_parse_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        Duration.parse("")


def test_format_uses_compact_tokens() -> None:
    assert Duration(years=1, months=2, days=3).format() == "1y2mo3d"
    assert str(Duration(half_years=1, minutes=30)) == "1ha30m"


def test_zero_duration_round_trips() -> None:
    assert Duration().format() == "0s"
    assert Duration.parse(Duration().format()) == Duration()
    assert Duration().is_zero()


@pytest.mark.parametrize(
    "d",
    [
        Duration(quarters=1),
        Duration(months=13, seconds=61),
        Duration(years=2, half_years=1, quarters=1, months=1, weeks=1, days=1, hours=1, minutes=1, seconds=1),
    ],
)
def test_parse_format_round_trip(d: Duration) -> None:
    assert Duration.parse(d.format()) == d


def test_negative_units_are_rejected() -> None:
    with pytest.raises(ValueError):
        Duration(days=-1)


def test_add_month_clamps_to_month_end() -> None:
    assert Duration.parse("1mo").add_to_date(_utc(2023, 1, 31)) == _utc(2023, 2, 28)
    assert Duration.parse("1y").add_to_date(_utc(2024, 2, 29)) == _utc(2025, 2, 28)


def test_add_quarter_is_three_calendar_months() -> None:
    assert Duration.parse("1q").add_to_date(_utc(2023, 1, 3)) == _utc(2023, 4, 3)


def test_add_applies_days_before_months() -> None:
    # Jan 31 + 1d = Feb 1, then + 1mo = Mar 1 (not Feb 28 + 1d).
    assert Duration.parse("1mo1d").add_to_date(_utc(2023, 1, 31)) == _utc(2023, 3, 1)


def test_add_time_units_and_weeks() -> None:
    assert Duration.parse("25h").add_to_date(_utc(2023, 1, 1)) == _utc(2023, 1, 2, 1, 0)
    assert Duration.parse("1w2d").add_to_date(_utc(2023, 1, 1)) == _utc(2023, 1, 10)
    assert Duration.parse("90s").add_to_date(_utc(2023, 1, 1)) == _utc(2023, 1, 1, 0, 1, 30)


def test_normalize_carries_units() -> None:
    assert Duration(seconds=3661).normalize() == Duration(hours=1, minutes=1, seconds=1)
    assert Duration(months=7).normalize() == Duration(half_years=1, months=1)
    assert Duration(days=15).normalize() == Duration(weeks=2, days=1)


@pytest.mark.parametrize(
    ("text", "predicate"),
    [
        ("1d", "is_daily"),
        ("24h", "is_daily"),
        ("48h", "is_bidaily"),
        ("7d", "is_weekly"),
        ("14d", "is_biweekly"),
        ("1mo", "is_monthly"),
        ("2mo", "is_bimonthly"),
        ("3mo", "is_quarterly"),
        ("2q", "is_half_yearly"),
        ("6mo", "is_half_yearly"),
        ("12mo", "is_yearly"),
        ("4ha", "is_biyearly"),
    ],
)
def test_classification_normalizes_first(text: str, predicate: str) -> None:
    assert getattr(Duration.parse(text), predicate)()


def test_classification_rejects_mixed_units() -> None:
    d = Duration.parse("1mo1d")
    assert not d.is_monthly()
    assert not d.is_daily()
    assert not Duration.parse("1w").is_daily()
    assert not Duration.parse("4mo").is_quarterly()
