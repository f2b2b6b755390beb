"""
Date helpers shared by the row parser, filter engine and analytics.

All timestamps inside the pipeline are naive UTC datetimes; on the wire they
are ISO-8601 strings with millisecond precision and a trailing "Z", the
format the dashboard front end already stores in noteDate/lastUpdated.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import pandas as pd

from dashboard.logics.exceptions import ParseError

logger = logging.getLogger(__name__)

# Cell values that mean "no date" in the member sheet
BLANK_DATE_VALUES = ("", "-")


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_timestamp(value: datetime) -> str:
    """
    Format a datetime as ISO-8601 with milliseconds and a "Z" suffix.

    Example:
        >>> format_timestamp(datetime(2024, 1, 10))
        '2024-01-10T00:00:00.000Z'
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _parse_slashed_date(date_part: str) -> datetime:
    """
    Parse a "MM/DD/YYYY" sheet date; falls back to "DD/MM/YYYY" when the
    first component cannot be a month.
    """
    parts = date_part.split("/")
    try:
        first, second, year = (int(p) for p in parts)
    except ValueError:
        raise ParseError("date", date_part, "MM/DD/YYYY")

    month, day = first, second
    if first > 12 and second <= 12:
        month, day = second, first

    try:
        return datetime(year, month, day)
    except ValueError:
        raise ParseError("date", date_part, "MM/DD/YYYY")


def _parse_generic(value: str) -> datetime:
    try:
        parsed = pd.to_datetime(value)
    except (ValueError, TypeError, OverflowError):
        raise ParseError("date", value, "ISO-8601 date")
    if pd.isna(parsed):
        raise ParseError("date", value, "ISO-8601 date")
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC").tz_localize(None)
    return parsed.to_pydatetime()


def parse_sheet_date(value: str) -> datetime:
    """
    Parse a raw member-sheet date cell.

    Slashed values ("11/02/2023 00:00:00") keep only the date part;
    everything else ("2024-01-10", "2025-04-12 18:57:43") goes through
    pandas. Raises ParseError when the cell is not a date.
    """
    text = value.strip()
    if "/" in text:
        date_part = text.split(" ")[0]
        if len(date_part.split("/")) == 3:
            return _parse_slashed_date(date_part)
    return _parse_generic(text)


def normalize_date(value: Optional[str]) -> str:
    """
    Normalize a sheet date cell to an ISO timestamp string.

    Returns "" for blank or "-" cells and the original string when it cannot
    be parsed, so one malformed cell never aborts a load.

    Examples:
        >>> normalize_date("2024-01-10")
        '2024-01-10T00:00:00.000Z'
        >>> normalize_date("-")
        ''
        >>> normalize_date("soon")
        'soon'
    """
    if value is None or value.strip() in BLANK_DATE_VALUES:
        return ""
    try:
        return format_timestamp(parse_sheet_date(value))
    except ParseError as e:
        logger.warning(f"[DateUtils] {e.message}; keeping original value")
        return value


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a normalized timestamp (or a filter bound) into a naive UTC datetime.

    Returns None when the value is blank or unparsable; date comparisons
    against None are treated as "unknown" by callers.
    """
    if not value or value.strip() in BLANK_DATE_VALUES:
        return None
    try:
        return parse_sheet_date(value)
    except ParseError:
        return None
