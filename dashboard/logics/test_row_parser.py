"""
Unit tests for the member feed row parser and date normalization.

Covers:
  - Cell coercion: parse_int, parse_sessions_left, parse_status
  - Date normalization: normalize_date, parse_timestamp
  - Whole rows and feeds: parse_member_row, parse_member_rows

Run with:
    python3 -m pytest dashboard/logics/test_row_parser.py -v
"""

import pytest

from dashboard.logics.date_utils import normalize_date, parse_timestamp, format_timestamp
from dashboard.logics.exceptions import ParseError
from dashboard.logics.row_parser import (
    parse_int,
    parse_member_row,
    parse_member_rows,
    parse_sessions_left,
    parse_status,
)


# ============================================================================
# HELPERS
# ============================================================================

HEADER = [
    "Unique ID", "Member ID", "First Name", "Last Name", "Email", "Membership Name",
    "End Date", "Location", "Sessions Left", "Item ID", "Order Date", "Sold By",
    "Membership ID", "Frozen", "Paid", "Status",
]


def make_row(**overrides):
    values = {
        "unique_id": "U1", "member_id": "M1", "first_name": "Jane", "last_name": "Doe",
        "email": "jane@x.com", "membership_name": "Plan A", "end_date": "2024-01-10",
        "location": "Loc1", "sessions_left": "5", "item_id": "I1", "order_date": "2023-01-10",
        "sold_by": "-", "membership_id": "-", "frozen": "-", "paid": "-", "status": "Active",
    }
    values.update(overrides)
    return list(values.values())


# ============================================================================
# 1. Cell coercion
# ============================================================================

class TestParseInt:

    def test_plain_integer(self):
        assert parse_int("12", "sessionsLeft") == 12

    def test_leading_integer_with_suffix(self):
        assert parse_int("5 sessions", "sessionsLeft") == 5

    def test_no_leading_integer_raises(self):
        with pytest.raises(ParseError) as exc_info:
            parse_int("five", "sessionsLeft")
        assert exc_info.value.context["field"] == "sessionsLeft"


class TestParseSessionsLeft:

    @pytest.mark.parametrize("value, expected", [
        ("5", 5),
        ("0", 0),
        ("", 0),
        ("-", 0),
        ("n/a", 0),
        ("-3", 0),
        ("12 left", 12),
    ])
    def test_defaults_and_clamping(self, value, expected):
        assert parse_sessions_left(value) == expected


class TestParseStatus:

    @pytest.mark.parametrize("value, expected", [
        ("Active", "Active"),
        ("active", "Active"),
        (" ACTIVE ", "Active"),
        ("Expired", "Expired"),
        ("", "Expired"),
        ("Frozen", "Expired"),
    ])
    def test_normalization(self, value, expected):
        assert parse_status(value) == expected


# ============================================================================
# 2. Dates
# ============================================================================

class TestNormalizeDate:

    def test_iso_date(self):
        assert normalize_date("2024-01-10") == "2024-01-10T00:00:00.000Z"

    def test_iso_datetime_keeps_time(self):
        assert normalize_date("2025-04-12 18:57:43") == "2025-04-12T18:57:43.000Z"

    def test_slashed_date_is_month_first(self):
        assert normalize_date("11/02/2023 00:00:00") == "2023-11-02T00:00:00.000Z"

    def test_slashed_date_falls_back_to_day_first(self):
        assert normalize_date("25/04/2025 19:30:00") == "2025-04-25T00:00:00.000Z"

    @pytest.mark.parametrize("value", ["", "-", "   ", None])
    def test_blank_values(self, value):
        assert normalize_date(value) == ""

    def test_unparsable_value_is_kept(self):
        assert normalize_date("soon") == "soon"

    def test_parse_timestamp_round_trips_normalized_value(self):
        parsed = parse_timestamp(normalize_date("2024-01-10"))
        assert format_timestamp(parsed) == "2024-01-10T00:00:00.000Z"

    def test_parse_timestamp_unknown(self):
        assert parse_timestamp("soon") is None
        assert parse_timestamp("") is None


# ============================================================================
# 3. Rows
# ============================================================================

class TestParseMemberRow:

    def test_scenario_row(self):
        parsed = parse_member_row(make_row())

        assert parsed.unique_id == "U1"
        assert parsed.member_id == "M1"
        assert parsed.sessions_left == 5
        assert parsed.status == "Active"
        assert parsed.end_date == "2024-01-10T00:00:00.000Z"
        assert parsed.order_date == "2023-01-10T00:00:00.000Z"
        assert parsed.start_date == parsed.order_date
        assert parsed.total_sessions_column is None

    def test_short_row_uses_defaults(self):
        parsed = parse_member_row(["U2", "M2", "Ann"])

        assert parsed.unique_id == "U2"
        assert parsed.email == ""
        assert parsed.sessions_left == 0
        assert parsed.status == "Expired"
        assert parsed.end_date == ""

    def test_none_cells_become_empty(self):
        row = make_row(email=None, location=None)
        parsed = parse_member_row(row)
        assert parsed.email == ""
        assert parsed.location == ""

    def test_optional_trailing_columns(self):
        row = make_row() + ["10", "+91 98200 00000", "Bandra West"]
        parsed = parse_member_row(row)

        assert parsed.total_sessions_column == 10
        assert parsed.phone == "+91 98200 00000"
        assert parsed.address == "Bandra West"

    def test_malformed_total_column_is_ignored(self):
        parsed = parse_member_row(make_row() + ["unlimited"])
        assert parsed.total_sessions_column is None


class TestParseMemberRows:

    def test_header_is_skipped(self):
        parsed = parse_member_rows([HEADER, make_row(), make_row(unique_id="U2")])
        assert [p.unique_id for p in parsed] == ["U1", "U2"]

    def test_empty_feed(self):
        assert parse_member_rows([]) == []

    def test_header_only_feed(self):
        assert parse_member_rows([HEADER]) == []

    def test_bad_cell_does_not_drop_row(self):
        parsed = parse_member_rows([HEADER, make_row(sessions_left="lots", end_date="never")])

        assert len(parsed) == 1
        assert parsed[0].sessions_left == 0
        assert parsed[0].end_date == "never"
