"""Parsing of the date and timestamp strings found in Oura API documents."""

from datetime import date, datetime, time, timezone

from dateutil import parser as date_parser

from .exceptions import ParsingError

OURA_API_DATE_FORMAT = "%Y-%m-%d"


def parse_timestamp(value: str) -> datetime:
    """
    Parse an Oura timestamp into a timezone-aware UTC datetime.

    Accepts RFC3339 strings with or without fractional seconds
    (``2021-01-01T00:00:00+00:00``, ``2021-01-01T00:00:00.000+02:00``,
    ``2021-01-01T00:00:00Z``). A value without a time of day or without a UTC
    offset is rejected rather than guessed.

    Raises:
        ParsingError: kind ``TimestampParsing``
    """
    try:
        parsed = date_parser.isoparse(value)
    except (ValueError, OverflowError, TypeError) as e:
        raise ParsingError(ParsingError.TIMESTAMP_PARSING, value, str(e)) from e

    if parsed.tzinfo is None:
        raise ParsingError(
            ParsingError.TIMESTAMP_PARSING,
            value,
            "premature end of input, expected a time of day and a UTC offset",
        )

    return parsed.astimezone(timezone.utc)


def parse_date(value: str) -> date:
    """
    Parse a ``YYYY-MM-DD`` calendar date.

    Trailing content (for example a full timestamp) is an error, not truncated.

    Raises:
        ParsingError: kind ``DateParsing``
    """
    try:
        return datetime.strptime(value, OURA_API_DATE_FORMAT).date()
    except (ValueError, TypeError) as e:
        raise ParsingError(ParsingError.DATE_PARSING, value, str(e)) from e


def midnight_utc(day: date) -> datetime:
    """Start of ``day`` in UTC."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)
