"""
Annotation Store Adapter.

Turns the positional annotation feed into a lookup keyed by unique ID and by
the composite fallback key, and writes single-member annotations back.

Column order (0-based): uniqueId, memberId, email, comments, notes,
tags (", "-delimited), noteDate, lastUpdated, persistenceKey.

Both keys of one annotation row point at the same record. Rows are applied in
feed order, so when two rows share a key the later row wins silently; the
store does not enforce one row per member.
"""

import logging
from datetime import datetime
from threading import Lock
from typing import Callable, Dict, List, Optional, Sequence

from dashboard.logics.date_utils import format_timestamp, utc_now
from dashboard.logics.exceptions import (
    AnnotationStoreNotFound,
    FetchError,
    WriteError,
)
from dashboard.logics.models import (
    ANNOTATION_HEADERS,
    TAG_DELIMITER,
    AnnotationRecord,
)
from dashboard.logics.row_parser import cell

logger = logging.getLogger(__name__)

ANNOTATION_COLUMN_COUNT = len(ANNOTATION_HEADERS)

AnnotationLookup = Dict[str, AnnotationRecord]


def fallback_key(member_id: str, email: str) -> str:
    """Composite key used when the unique ID has churned: memberId-lower(email)."""
    return f"{member_id}-{email.lower()}"


def annotation_persistence_key(unique_id: str, member_id: str, email: str) -> str:
    return f"{unique_id}-{member_id}-{email.lower()}"


def parse_tags(value: str) -> List[str]:
    """
    Split a stored tag string on ", ", dropping empty entries.

    Example:
        >>> parse_tags("vip, , follow up")
        ['vip', 'follow up']
    """
    if not value:
        return []
    return [tag for tag in value.split(TAG_DELIMITER) if tag.strip()]


def serialize_tags(tags: Sequence[str]) -> str:
    return TAG_DELIMITER.join(tags)


def parse_annotation_row(row: Sequence) -> AnnotationRecord:
    return AnnotationRecord(
        unique_id=cell(row, 0),
        member_id=cell(row, 1),
        email=cell(row, 2),
        comments=cell(row, 3),
        notes=cell(row, 4),
        tags=parse_tags(cell(row, 5)),
        note_date=cell(row, 6),
        last_updated=cell(row, 7),
        persistence_key=cell(row, 8),
    )


def build_annotation_lookup(raw_rows: Sequence[Sequence]) -> AnnotationLookup:
    """
    Build the annotation lookup from raw annotation rows (first row = header).

    Rows without a unique ID are skipped. Each kept row is stored under its
    unique ID and, when member ID and email are both present, under the
    fallback key as well.

    Args:
        raw_rows: Annotation feed rows including the header row

    Returns:
        Dict mapping key -> AnnotationRecord
    """
    lookup: AnnotationLookup = {}
    if not raw_rows:
        return lookup

    skipped = 0
    for row in raw_rows[1:]:
        unique_id = cell(row, 0)
        if not unique_id:
            skipped += 1
            continue

        annotation = parse_annotation_row(row)
        lookup[unique_id] = annotation

        if annotation.member_id and annotation.email:
            lookup[fallback_key(annotation.member_id, annotation.email)] = annotation

    if skipped:
        logger.warning(f"[AnnotationStore] Skipped {skipped} annotation rows without a unique ID")

    logger.debug(f"[AnnotationStore] Built lookup with {len(lookup)} keys from {len(raw_rows) - 1} rows")
    return lookup


def build_annotation_row(
    unique_id: str,
    member_id: str,
    email: str,
    comments: str,
    notes: str,
    tags: Sequence[str],
    note_date: str,
    last_updated: str
) -> List[str]:
    """Serialize one annotation into the 9-column wire layout."""
    return [
        unique_id,
        member_id,
        email,
        comments,
        notes,
        serialize_tags(tags),
        note_date,
        last_updated,
        annotation_persistence_key(unique_id, member_id, email),
    ]


class AnnotationStoreAdapter:
    """
    Reads and writes the annotation feed through a FeedSource.

    Args:
        source: Object with fetch_annotation_rows() and write_annotation_rows(rows)
        clock: Returns the current naive UTC datetime (injectable for tests)
    """

    def __init__(self, source, clock: Optional[Callable[[], datetime]] = None):
        self.source = source
        self.clock = clock or utc_now
        self.write_lock = Lock()

    def fetch_rows(self) -> List[List[str]]:
        """
        Fetch raw annotation rows, header-only when the store does not exist.

        Raises:
            FetchError: On transport failure
        """
        try:
            rows = self.source.fetch_annotation_rows()
        except AnnotationStoreNotFound as e:
            logger.info(f"[AnnotationStore] {e.message}; treating as empty store")
            return [list(ANNOTATION_HEADERS)]

        if not rows:
            return [list(ANNOTATION_HEADERS)]
        return [list(row) for row in rows]

    def load_lookup(self) -> AnnotationLookup:
        """
        Fetch and index all annotations.

        Never raises: an unreachable store yields an empty lookup so the
        dashboard still loads member data.
        """
        try:
            rows = self.fetch_rows()
        except FetchError as e:
            logger.error(f"[AnnotationStore] {e.message}; continuing with zero annotations")
            return {}
        return build_annotation_lookup(rows)

    def get_annotation(self, unique_id: str) -> Optional[AnnotationRecord]:
        """Return the stored annotation for an exact unique ID, if any."""
        rows = self.fetch_rows()
        found = None
        for row in rows[1:]:
            if cell(row, 0) == unique_id:
                found = parse_annotation_row(row)
        return found

    def save_annotation(
        self,
        unique_id: str,
        member_id: str,
        email: str,
        comments: str,
        notes: str,
        tags: Sequence[str],
        note_date: str
    ) -> AnnotationRecord:
        """
        Persist one member's annotation.

        Replaces the row whose unique ID matches exactly (never the fallback
        key) or appends a new row, then writes the whole table back. Saving
        twice with the same unique ID leaves a single row with the latest
        content.

        Returns:
            The AnnotationRecord that was written

        Raises:
            WriteError: If the store cannot be read or written
        """
        if not unique_id:
            raise WriteError("unique ID is required to save an annotation", unique_id=unique_id)

        # The whole table is rewritten, so concurrent saves must not interleave
        with self.write_lock:
            try:
                rows = self.fetch_rows()
            except FetchError as e:
                raise WriteError(f"could not read annotation store ({e.context.get('reason')})", unique_id=unique_id) from e

            last_updated = format_timestamp(self.clock())
            new_row = build_annotation_row(
                unique_id, member_id, email, comments, notes, list(tags), note_date, last_updated
            )

            existing_index = next(
                (i for i, row in enumerate(rows) if i > 0 and cell(row, 0) == unique_id),
                None
            )
            if existing_index is not None:
                rows[existing_index] = new_row
                logger.info(f"[AnnotationStore] Updating annotation row {existing_index} for {unique_id}")
            else:
                rows.append(new_row)
                logger.info(f"[AnnotationStore] Appending annotation row for {unique_id}")

            try:
                self.source.write_annotation_rows(rows)
            except WriteError:
                raise
            except Exception as e:
                logger.error(f"[AnnotationStore] Write failed for {unique_id}: {e}", exc_info=True)
                raise WriteError(str(e), unique_id=unique_id) from e

        return parse_annotation_row(new_row)
