"""
Reconciler: joins parsed member rows with the annotation lookup.

Matching order per row:
    1. exact, case-sensitive unique ID
    2. fallback key memberId-lower(email)
    3. empty annotation

Output is 1:1 with the input and keeps its order.
"""

import logging
from typing import List, Optional, Sequence

from dashboard.logics.annotation_store import AnnotationLookup, fallback_key
from dashboard.logics.date_utils import format_timestamp, utc_now
from dashboard.logics.models import AnnotationRecord, MemberRecord, ParsedMemberRow

logger = logging.getLogger(__name__)

# Common class-package sizes used to estimate total sessions
SESSION_PACKAGE_LADDER = [4, 8, 12, 20]


def estimate_total_sessions(sessions_left: int, total_sessions_column: Optional[int] = None) -> int:
    """
    Total sessions of a membership.

    The explicit total column wins when present. Otherwise this is a
    heuristic, not a measurement: sessions left is rounded up to the next
    package size in SESSION_PACKAGE_LADDER, values above the ladder are
    treated as custom/unlimited packages and passed through, and 0 stays 0.
    The result is never below sessions_left.

    Examples:
        >>> estimate_total_sessions(5)
        8
        >>> estimate_total_sessions(25)
        25
        >>> estimate_total_sessions(0)
        0
    """
    if total_sessions_column is not None:
        return max(total_sessions_column, sessions_left)

    if sessions_left <= 0:
        return 0

    for package_size in SESSION_PACKAGE_LADDER:
        if sessions_left <= package_size:
            return package_size
    return sessions_left


def find_annotation(row: ParsedMemberRow, lookup: AnnotationLookup) -> Optional[AnnotationRecord]:
    """Look up a row's annotation by unique ID, then by the fallback key."""
    annotation = lookup.get(row.unique_id) if row.unique_id else None
    if annotation is not None:
        return annotation
    return lookup.get(fallback_key(row.member_id, row.email))


def build_member_record(
    row: ParsedMemberRow,
    annotation: Optional[AnnotationRecord],
    data_source: str = "",
    last_sync: str = ""
) -> MemberRecord:
    persistence_key = f"{row.unique_id}-{row.member_id}-{row.email}".lower()
    unique_identifier = f"{row.member_id}-{row.email}-{row.first_name}-{row.last_name}".lower()

    return MemberRecord(
        unique_id=row.unique_id,
        member_id=row.member_id,
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        membership_name=row.membership_name,
        end_date=row.end_date,
        location=row.location,
        sessions_left=row.sessions_left,
        total_sessions=estimate_total_sessions(row.sessions_left, row.total_sessions_column),
        status=row.status,
        item_id=row.item_id,
        order_date=row.order_date,
        start_date=row.start_date,
        sold_by=row.sold_by,
        membership_id=row.membership_id,
        frozen=row.frozen,
        paid=row.paid,
        phone=row.phone,
        address=row.address,
        comments=annotation.comments if annotation else "",
        notes=annotation.notes if annotation else "",
        tags=list(annotation.tags) if annotation else [],
        note_date=annotation.note_date if annotation else "",
        persistence_key=persistence_key,
        unique_identifier=unique_identifier,
        data_source=data_source,
        last_sync=last_sync,
    )


def reconcile(
    rows: Sequence[ParsedMemberRow],
    lookup: AnnotationLookup,
    data_source: str = "",
    last_sync: Optional[str] = None
) -> List[MemberRecord]:
    """
    Attach the best available annotation to every parsed member row.

    Args:
        rows: Parsed member rows
        lookup: Output of build_annotation_lookup()
        data_source: Label stored on each record (e.g. "workbook")
        last_sync: Timestamp stored on each record (defaults to now)

    Returns:
        One MemberRecord per input row, same order
    """
    sync_time = last_sync if last_sync is not None else format_timestamp(utc_now())

    records = []
    by_unique_id = 0
    by_fallback = 0
    for row in rows:
        annotation = find_annotation(row, lookup)
        if annotation is not None:
            if row.unique_id and row.unique_id in lookup:
                by_unique_id += 1
            else:
                by_fallback += 1
        records.append(build_member_record(row, annotation, data_source, sync_time))

    logger.info(
        f"[Reconciler] {len(records)} records: {by_unique_id} matched by unique ID, "
        f"{by_fallback} by fallback key, {len(records) - by_unique_id - by_fallback} without annotations"
    )
    return records
