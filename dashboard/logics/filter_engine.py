"""
Filter Engine for enriched member records.

Pure selection: records are never modified. A record is kept only when it
passes every active structured clause (apply_filters) and every active
quick-filter token (apply_quick_filters).

Date clauses follow the dashboard's comparison rules: a record whose date
cannot be parsed is not excluded by a structured date range or by the
days-lapsed window, but never satisfies a date-based quick filter.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence

from dashboard.logics.date_utils import parse_timestamp, utc_now
from dashboard.logics.exceptions import InvalidFilterException
from dashboard.logics.models import (
    DateRange,
    FilterOptions,
    IntRange,
    MemberRecord,
    STATUS_ACTIVE,
    STATUS_EXPIRED,
)

logger = logging.getLogger(__name__)

# Usage buckets, half-open intervals on percent used
USAGE_NOT_STARTED = "Not Started"
USAGE_LOW = "Low Usage (0-25%)"
USAGE_MEDIUM = "Medium Usage (25-50%)"
USAGE_HIGH = "High Usage (50-75%)"
USAGE_VERY_HIGH = "Very High Usage (75-99%)"
USAGE_FULL = "Fully Used (100%)"
USAGE_BUCKETS = [
    USAGE_NOT_STARTED,
    USAGE_LOW,
    USAGE_MEDIUM,
    USAGE_HIGH,
    USAGE_VERY_HIGH,
    USAGE_FULL,
]

PAYMENT_PAID = "Paid"
PAYMENT_PENDING = "Pending"
PAYMENT_OVERDUE = "Overdue"
PAYMENT_STATUSES = [PAYMENT_PAID, PAYMENT_PENDING, PAYMENT_OVERDUE]

GROUP_BY_OPTIONS = ["none", "location", "membershipType", "status", "usage", "daysLapsed"]

QUICK_ACTIVE = "active"
QUICK_EXPIRED = "expired"
QUICK_SESSIONS = "sessions"
QUICK_NO_SESSIONS = "no-sessions"
QUICK_RECENT = "recent"
QUICK_WEEKLY = "weekly"
QUICK_EXPIRING = "expiring"
LOCATION_TOKEN_PREFIX = "location-"
QUICK_FILTER_TOKENS = [
    QUICK_ACTIVE,
    QUICK_EXPIRED,
    QUICK_SESSIONS,
    QUICK_NO_SESSIONS,
    QUICK_RECENT,
    QUICK_WEEKLY,
    QUICK_EXPIRING,
]

RECENT_DAYS = 30
WEEKLY_DAYS = 7
EXPIRING_DAYS = 30

_PAID_WORDS = {"true", "yes", "paid", "y"}


# ============ Derived record metrics ============

def usage_percent(record: MemberRecord) -> float:
    """Percent of sessions used; 0 when total sessions is 0."""
    if record.total_sessions <= 0:
        return 0.0
    used = record.total_sessions - record.sessions_left
    return used / record.total_sessions * 100


def usage_bucket(record: MemberRecord) -> str:
    """
    Bucket a record's usage percent.

    Examples (total_sessions=10):
        sessions_left=10 -> "Not Started"
        sessions_left=8  -> "Low Usage (0-25%)"
        sessions_left=0  -> "Fully Used (100%)"
    """
    percent = usage_percent(record)
    if percent == 0:
        return USAGE_NOT_STARTED
    if percent < 25:
        return USAGE_LOW
    if percent < 50:
        return USAGE_MEDIUM
    if percent < 75:
        return USAGE_HIGH
    if percent < 100:
        return USAGE_VERY_HIGH
    return USAGE_FULL


def days_lapsed(record: MemberRecord, now: Optional[datetime] = None) -> Optional[int]:
    """Whole days since the end date (floor), or None if it is not a date."""
    end_date = parse_timestamp(record.end_date)
    if end_date is None:
        return None
    now = now or utc_now()
    return math.floor((now - end_date).total_seconds() / 86400)


def payment_status(record: MemberRecord) -> str:
    """
    Payment status derived from the paid cell.

    A positive amount or a truthy word counts as Paid; an unpaid expired
    membership is Overdue and an unpaid active one is Pending.
    """
    paid = (record.paid or "").strip()
    if paid.lower() in _PAID_WORDS:
        return PAYMENT_PAID
    try:
        if float(paid.replace(",", "")) > 0:
            return PAYMENT_PAID
    except ValueError:
        pass
    return PAYMENT_OVERDUE if record.status == STATUS_EXPIRED else PAYMENT_PENDING


# ============ Structured filters ============

def _within_dates(value: str, window: Optional[DateRange]) -> bool:
    if window is None:
        return True
    start = parse_timestamp(window.start)
    end = parse_timestamp(window.end)
    if start is None and end is None:
        return True

    date = parse_timestamp(value)
    if date is None:
        return True
    if start is not None and date < start:
        return False
    if end is not None and date > end:
        return False
    return True


def _within_range(value: int, window: Optional[IntRange]) -> bool:
    if window is None:
        return True
    if window.min is not None and value < window.min:
        return False
    if window.max is not None and value > window.max:
        return False
    return True


def matches_filters(record: MemberRecord, options: FilterOptions, now: Optional[datetime] = None) -> bool:
    """True when the record passes every active structured clause."""
    if options.status and record.status not in options.status:
        return False

    if options.locations and record.location not in options.locations:
        return False

    if options.membership_types and record.membership_name not in options.membership_types:
        return False

    if not _within_range(record.sessions_left, options.sessions_range):
        return False

    if not _within_dates(record.end_date, options.date_range):
        return False

    if not _within_dates(record.order_date, options.joined_date_range):
        return False

    if options.membership_usage and usage_bucket(record) not in options.membership_usage:
        return False

    if options.days_lapsed is not None and record.status == STATUS_EXPIRED:
        lapsed = days_lapsed(record, now)
        if lapsed is not None and not _within_range(lapsed, options.days_lapsed):
            return False

    if options.payment_status and payment_status(record) not in options.payment_status:
        return False

    return True


def apply_filters(
    records: Sequence[MemberRecord],
    options: Optional[FilterOptions],
    now: Optional[datetime] = None
) -> List[MemberRecord]:
    """
    Select the records passing all structured clauses.

    Args:
        records: Enriched member records
        options: Filter configuration (None = no filtering)
        now: Reference time for days-lapsed (defaults to current UTC time)

    Returns:
        Matching records in input order
    """
    if options is None:
        return list(records)

    now = now or utc_now()
    result = [record for record in records if matches_filters(record, options, now)]
    logger.debug(f"[FilterEngine] Structured filters kept {len(result)} of {len(records)} records")
    return result


def validate_filter_options(options: FilterOptions) -> None:
    """
    Reject filter values that cannot be evaluated.

    Raises:
        InvalidFilterException: For unparsable date bounds, inverted ranges or an unknown group_by
    """
    for name in ("date_range", "joined_date_range"):
        window = getattr(options, name)
        if window is None:
            continue
        for bound in ("start", "end"):
            value = getattr(window, bound)
            if value and parse_timestamp(value) is None:
                raise InvalidFilterException(f"{name}.{bound}", value, "not a date")

    for name in ("sessions_range", "days_lapsed"):
        window = getattr(options, name)
        if window is not None and window.min is not None and window.max is not None and window.min > window.max:
            raise InvalidFilterException(name, {"min": window.min, "max": window.max}, "min is greater than max")

    if options.group_by and options.group_by not in GROUP_BY_OPTIONS:
        raise InvalidFilterException("group_by", options.group_by, f"must be one of {GROUP_BY_OPTIONS}")


# ============ Quick filters ============

def _in_window(value: str, start: datetime, end: Optional[datetime] = None) -> bool:
    date = parse_timestamp(value)
    if date is None:
        return False
    if date < start:
        return False
    if end is not None and date > end:
        return False
    return True


def quick_filter_predicate(token: str, now: datetime) -> Callable[[MemberRecord], bool]:
    """
    Predicate for one quick-filter token.

    Unrecognized tokens pass every record.
    """
    if token == QUICK_ACTIVE:
        return lambda r: r.status == STATUS_ACTIVE
    if token == QUICK_EXPIRED:
        return lambda r: r.status == STATUS_EXPIRED
    if token == QUICK_SESSIONS:
        return lambda r: r.sessions_left > 0
    if token == QUICK_NO_SESSIONS:
        return lambda r: r.sessions_left == 0
    if token == QUICK_RECENT:
        since = now - timedelta(days=RECENT_DAYS)
        return lambda r: _in_window(r.order_date, since)
    if token == QUICK_WEEKLY:
        since = now - timedelta(days=WEEKLY_DAYS)
        return lambda r: _in_window(r.order_date, since)
    if token == QUICK_EXPIRING:
        until = now + timedelta(days=EXPIRING_DAYS)
        return lambda r: _in_window(r.end_date, now, until)
    if token.startswith(LOCATION_TOKEN_PREFIX):
        location = token[len(LOCATION_TOKEN_PREFIX):]
        return lambda r: r.location == location

    logger.debug(f"[FilterEngine] Unknown quick filter token {token!r}; passing all records")
    return lambda r: True


def apply_quick_filters(
    records: Sequence[MemberRecord],
    tokens: Sequence[str],
    now: Optional[datetime] = None
) -> List[MemberRecord]:
    """
    Select the records passing every active quick-filter token (AND).

    No tokens returns the input unchanged.
    """
    if not tokens:
        return list(records)

    now = now or utc_now()
    predicates = [quick_filter_predicate(token, now) for token in tokens]
    result = [record for record in records if all(p(record) for p in predicates)]
    logger.debug(f"[FilterEngine] Quick filters {list(tokens)} kept {len(result)} of {len(records)} records")
    return result


def location_token(location: str) -> str:
    return f"{LOCATION_TOKEN_PREFIX}{location}"


def quick_filter_counts(records: Sequence[MemberRecord], now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Record count behind each quick-filter chip, plus "all" and one
    location-<value> entry per known location.
    """
    now = now or utc_now()
    counts = {"all": len(records)}
    for token in QUICK_FILTER_TOKENS:
        predicate = quick_filter_predicate(token, now)
        counts[token] = sum(1 for record in records if predicate(record))

    for location in sorted({r.location for r in records if r.location and r.location != "-"}):
        token = location_token(location)
        counts[token] = sum(1 for record in records if record.location == location)
    return counts
