"""Tests for Oura date and timestamp parsing."""

from datetime import date, datetime, timezone

import pytest

from oura_exporter.dates import midnight_utc, parse_date, parse_timestamp
from oura_exporter.exceptions import ParsingError


def test_parse_timestamp_utc_offset():
    """Test parsing a timestamp with an explicit UTC offset."""
    parsed = parse_timestamp("2021-01-01T00:00:00+00:00")

    assert parsed == datetime(2021, 1, 1, tzinfo=timezone.utc)
    assert parsed.tzinfo == timezone.utc


def test_parse_timestamp_fractional_seconds_and_offset():
    """Test fractional seconds and a non-UTC offset are normalized to UTC."""
    parsed = parse_timestamp("2021-01-01T00:00:00.000+02:00")

    assert parsed == datetime(2020, 12, 31, 22, 0, tzinfo=timezone.utc)


def test_parse_timestamp_zulu():
    parsed = parse_timestamp("2021-06-15T08:30:15Z")

    assert parsed == datetime(2021, 6, 15, 8, 30, 15, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", ["2021-01-01", "2021-01-01T00:00:00", "not a timestamp", ""])
def test_parse_timestamp_invalid(value):
    """Test that incomplete or garbage timestamps are rejected."""
    with pytest.raises(ParsingError) as exc_info:
        parse_timestamp(value)

    assert exc_info.value.kind == ParsingError.TIMESTAMP_PARSING
    assert exc_info.value.value == value
    assert "timestamp" in exc_info.value.message


def test_parse_date():
    assert parse_date("2021-01-01") == date(2021, 1, 1)


@pytest.mark.parametrize("value", ["2021-01-01T00:00:00", "2021-13-01", "01/01/2021"])
def test_parse_date_invalid(value):
    """Test that anything but a bare calendar date is rejected."""
    with pytest.raises(ParsingError) as exc_info:
        parse_date(value)

    assert exc_info.value.kind == ParsingError.DATE_PARSING
    assert exc_info.value.message.startswith(f"Cannot parse Oura API date '{value}'")


def test_midnight_utc():
    assert midnight_utc(date(2021, 1, 2)) == datetime(2021, 1, 2, tzinfo=timezone.utc)
