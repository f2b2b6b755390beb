"""
Member list views: search, sort, grouping and filter option lists.

Read-only helpers behind the member table and the filter sidebar.
"""

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from dashboard.logics.date_utils import parse_timestamp, utc_now
from dashboard.logics.filter_engine import (
    GROUP_BY_OPTIONS,
    PAYMENT_STATUSES,
    USAGE_BUCKETS,
    days_lapsed,
    usage_bucket,
)
from dashboard.logics.models import MemberRecord, STATUS_ACTIVE, STATUS_EXPIRED

logger = logging.getLogger(__name__)

DEFAULT_SORT_FIELD = "endDate"
DEFAULT_SORT_DIRECTION = "desc"
DEFAULT_PAGE_SIZE = 15

# camelCase sort keys accepted from the client -> record attribute
SORT_FIELDS = {
    "uniqueId": "unique_id",
    "memberId": "member_id",
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "membershipName": "membership_name",
    "endDate": "end_date",
    "orderDate": "order_date",
    "location": "location",
    "sessionsLeft": "sessions_left",
    "totalSessions": "total_sessions",
    "status": "status",
    "noteDate": "note_date",
}

DATE_SORT_FIELDS = {"end_date", "order_date", "note_date"}

# (label, inclusive upper bound in days)
LAPSED_BANDS = [
    ("0-30 days", 30),
    ("31-60 days", 60),
    ("61-90 days", 90),
    ("91-180 days", 180),
    ("181-365 days", 365),
]
LAPSED_OVER_YEAR = "365+ days"
LAPSED_NOT_EXPIRED = "Not Expired"
LAPSED_UNKNOWN = "Unknown"

DAYS_LAPSED_FLOOR = 0
DAYS_LAPSED_CEILING = 365


def search_records(records: Sequence[MemberRecord], term: Optional[str]) -> List[MemberRecord]:
    """Case-insensitive substring match against every field of the record."""
    if not term:
        return list(records)

    needle = term.lower()
    result = []
    for record in records:
        values = record.to_dict().values()
        haystack = " ".join(
            ", ".join(v) if isinstance(v, list) else str(v) for v in values
        ).lower()
        if needle in haystack:
            result.append(record)
    return result


def sort_records(
    records: Sequence[MemberRecord],
    sort_field: str = DEFAULT_SORT_FIELD,
    direction: str = DEFAULT_SORT_DIRECTION
) -> List[MemberRecord]:
    """
    Sort records by a camelCase field name.

    Date fields sort chronologically with unparsable dates last; unknown
    fields fall back to the default sort.

    Raises:
        ValueError: If direction is not "asc" or "desc"
    """
    if direction not in ("asc", "desc"):
        raise ValueError(f"Invalid sort direction: {direction}")

    attribute = SORT_FIELDS.get(sort_field)
    if attribute is None:
        logger.debug(f"[MemberViews] Unknown sort field {sort_field!r}, using {DEFAULT_SORT_FIELD}")
        attribute = SORT_FIELDS[DEFAULT_SORT_FIELD]

    reverse = direction == "desc"

    if attribute in DATE_SORT_FIELDS:
        dated = [(parse_timestamp(getattr(r, attribute)), r) for r in records]
        known = [pair for pair in dated if pair[0] is not None]
        unknown = [r for d, r in dated if d is None]
        known.sort(key=lambda pair: pair[0], reverse=reverse)
        return [r for _, r in known] + unknown

    return sorted(records, key=lambda r: getattr(r, attribute), reverse=reverse)


def paginate(records: Sequence[Any], limit: int, offset: int) -> List[Any]:
    return list(records[offset:offset + limit])


def lapsed_band(record: MemberRecord, now: Optional[datetime] = None) -> str:
    if record.status != STATUS_EXPIRED:
        return LAPSED_NOT_EXPIRED
    lapsed = days_lapsed(record, now)
    if lapsed is None:
        return LAPSED_UNKNOWN
    for label, upper in LAPSED_BANDS:
        if lapsed <= upper:
            return label
    return LAPSED_OVER_YEAR


def group_key(record: MemberRecord, group_by: str, now: Optional[datetime] = None) -> str:
    if group_by == "location":
        return record.location or "Unknown"
    if group_by == "membershipType":
        return record.membership_name or "Unknown"
    if group_by == "status":
        return record.status
    if group_by == "usage":
        return usage_bucket(record)
    if group_by == "daysLapsed":
        return lapsed_band(record, now)
    raise ValueError(f"Invalid group_by: {group_by}")


def group_records(
    records: Sequence[MemberRecord],
    group_by: Optional[str],
    now: Optional[datetime] = None
) -> "OrderedDict[str, List[MemberRecord]]":
    """
    Group records by one of GROUP_BY_OPTIONS.

    Groups keep first-seen order; "none" (or empty) yields a single "All" group.

    Raises:
        ValueError: If group_by is not a known option
    """
    groups: "OrderedDict[str, List[MemberRecord]]" = OrderedDict()
    if not group_by or group_by == "none":
        groups["All"] = list(records)
        return groups

    if group_by not in GROUP_BY_OPTIONS:
        raise ValueError(f"Invalid group_by: {group_by}")

    now = now or utc_now()
    for record in records:
        groups.setdefault(group_key(record, group_by, now), []).append(record)
    return groups


def days_lapsed_stats(records: Sequence[MemberRecord], now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Slider bounds and average days since expiry across expired members.

    The range always spans at least 0 to 365 days; avg is 0 with no expired members.
    """
    now = now or utc_now()
    values = [
        lapsed for lapsed in (
            days_lapsed(r, now) for r in records if r.status == STATUS_EXPIRED
        )
        if lapsed is not None and lapsed >= 0
    ]
    return {
        "min": min(values + [DAYS_LAPSED_FLOOR]),
        "max": max(values + [DAYS_LAPSED_CEILING]),
        "avg": round(sum(values) / len(values)) if values else 0,
    }


def available_filter_options(records: Sequence[MemberRecord], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Option lists for the filter sidebar, derived from the current records.

    Locations exclude blanks and "-"; membership types keep first-seen order.
    """
    locations = sorted({r.location for r in records if r.location and r.location != "-"})
    membership_types = list(OrderedDict.fromkeys(r.membership_name for r in records if r.membership_name))
    sessions = [r.sessions_left for r in records]

    return {
        "statuses": [STATUS_ACTIVE, STATUS_EXPIRED],
        "locations": locations,
        "membershipTypes": membership_types,
        "membershipUsage": list(USAGE_BUCKETS),
        "paymentStatus": list(PAYMENT_STATUSES),
        "groupBy": list(GROUP_BY_OPTIONS),
        "sessionsRange": {
            "min": min(sessions) if sessions else 0,
            "max": max(sessions) if sessions else 0,
        },
        "daysLapsedStats": days_lapsed_stats(records, now),
    }
