"""
Row Parser for the member feed.

Decodes the positional member sheet (first row = headers) into
ParsedMemberRow objects. Every cell is decoded independently and falls back
to its documented default when malformed, so a bad cell never drops its row
and a bad row never aborts the load.

Column layout (0-based, positional only; headers are never read):
    0 uniqueId        4 email            8 sessionsLeft    12 membershipId
    1 memberId        5 membershipName   9 itemId          13 frozen
    2 firstName       6 endDate         10 orderDate       14 paid
    3 lastName        7 location        11 soldBy          15 status
    16 totalSessions (optional)  17 phone (optional)  18 address (optional)
"""

import logging
import re
from typing import List, Optional, Sequence

from dashboard.logics.date_utils import normalize_date
from dashboard.logics.exceptions import ParseError
from dashboard.logics.models import (
    ParsedMemberRow,
    STATUS_ACTIVE,
    STATUS_EXPIRED,
)

logger = logging.getLogger(__name__)

COL_UNIQUE_ID = 0
COL_MEMBER_ID = 1
COL_FIRST_NAME = 2
COL_LAST_NAME = 3
COL_EMAIL = 4
COL_MEMBERSHIP_NAME = 5
COL_END_DATE = 6
COL_LOCATION = 7
COL_SESSIONS_LEFT = 8
COL_ITEM_ID = 9
COL_ORDER_DATE = 10
COL_SOLD_BY = 11
COL_MEMBERSHIP_ID = 12
COL_FROZEN = 13
COL_PAID = 14
COL_STATUS = 15
COL_TOTAL_SESSIONS = 16
COL_PHONE = 17
COL_ADDRESS = 18

MEMBER_COLUMN_COUNT = 16

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def cell(row: Sequence, index: int) -> str:
    """Return the cell at index as a string, "" when missing or None."""
    if index >= len(row):
        return ""
    value = row[index]
    if value is None:
        return ""
    return str(value)


def parse_int(value: str, field_name: str) -> int:
    """
    Parse the leading integer of a cell ("5", "5 sessions", " 12").

    Raises:
        ParseError: If the cell has no leading integer
    """
    match = _LEADING_INT.match(value or "")
    if not match:
        raise ParseError(field_name, value, "integer")
    return int(match.group(1))


def parse_sessions_left(value: str) -> int:
    """Sessions left; 0 when blank/unparsable, never negative."""
    try:
        return max(parse_int(value, "sessionsLeft"), 0)
    except ParseError:
        if value and value.strip() not in ("", "-"):
            logger.debug(f"[RowParser] Unparsable sessionsLeft {value!r}, defaulting to 0")
        return 0


def parse_optional_int(value: str, field_name: str) -> Optional[int]:
    """Integer cell that may legitimately be absent."""
    if not value or not value.strip():
        return None
    try:
        return parse_int(value, field_name)
    except ParseError:
        logger.debug(f"[RowParser] Unparsable {field_name} {value!r}, ignoring column")
        return None


def parse_status(value: str) -> str:
    """
    Normalize the status cell to Active/Expired.

    Blank or unrecognized values default to Expired.
    """
    normalized = (value or "").strip().lower()
    if normalized == STATUS_ACTIVE.lower():
        return STATUS_ACTIVE
    return STATUS_EXPIRED


def parse_member_row(row: Sequence) -> ParsedMemberRow:
    """
    Decode one positional member row.

    Example:
        >>> row = ["U1", "M1", "Jane", "Doe", "jane@x.com", "Plan A",
        ...        "2024-01-10", "Loc1", "5", "I1", "2023-01-10",
        ...        "-", "-", "-", "-", "Active"]
        >>> parsed = parse_member_row(row)
        >>> parsed.sessions_left, parsed.status
        (5, 'Active')
    """
    order_date = normalize_date(cell(row, COL_ORDER_DATE))

    return ParsedMemberRow(
        unique_id=cell(row, COL_UNIQUE_ID),
        member_id=cell(row, COL_MEMBER_ID),
        first_name=cell(row, COL_FIRST_NAME),
        last_name=cell(row, COL_LAST_NAME),
        email=cell(row, COL_EMAIL),
        membership_name=cell(row, COL_MEMBERSHIP_NAME),
        end_date=normalize_date(cell(row, COL_END_DATE)),
        location=cell(row, COL_LOCATION),
        sessions_left=parse_sessions_left(cell(row, COL_SESSIONS_LEFT)),
        item_id=cell(row, COL_ITEM_ID),
        order_date=order_date,
        sold_by=cell(row, COL_SOLD_BY),
        membership_id=cell(row, COL_MEMBERSHIP_ID),
        frozen=cell(row, COL_FROZEN),
        paid=cell(row, COL_PAID),
        status=parse_status(cell(row, COL_STATUS)),
        # The sheet has no separate start column; memberships start on order
        start_date=order_date,
        total_sessions_column=parse_optional_int(cell(row, COL_TOTAL_SESSIONS), "totalSessions"),
        phone=cell(row, COL_PHONE),
        address=cell(row, COL_ADDRESS),
    )


def parse_member_rows(raw_rows: Sequence[Sequence]) -> List[ParsedMemberRow]:
    """
    Decode a full member feed.

    Args:
        raw_rows: Feed rows, the first being the header row

    Returns:
        One ParsedMemberRow per data row, in feed order (empty feed -> [])
    """
    if not raw_rows:
        return []

    data_rows = raw_rows[1:]
    parsed = [parse_member_row(row) for row in data_rows]

    short_rows = sum(1 for row in data_rows if len(row) < MEMBER_COLUMN_COUNT)
    if short_rows:
        logger.info(f"[RowParser] {short_rows} of {len(data_rows)} rows had missing cells (defaults applied)")

    missing_ids = sum(1 for row in parsed if not row.unique_id)
    if missing_ids:
        logger.warning(f"[RowParser] {missing_ids} rows have no unique ID; only the fallback key can match them")

    logger.debug(f"[RowParser] Parsed {len(parsed)} member rows")
    return parsed
