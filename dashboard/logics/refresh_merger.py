"""
Refresh Merger: keeps annotations visible across periodic refetches.

A save lands in the annotation store asynchronously; a refetch whose snapshot
predates the save would otherwise show the note as gone until the next
cycle. The merger holds the last-known enriched list and, per annotation
field, keeps the previous non-empty value whenever the fresh value is empty.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from dashboard.logics.date_utils import format_timestamp, utc_now
from dashboard.logics.models import MemberRecord

logger = logging.getLogger(__name__)


def merge_annotation_fields(previous: MemberRecord, fresh: MemberRecord) -> MemberRecord:
    """
    Field-level merge of one record pair: prefer the fresh value unless it
    is empty and the previous one is not.
    """
    return replace(
        fresh,
        comments=fresh.comments or previous.comments,
        notes=fresh.notes or previous.notes,
        tags=list(fresh.tags) if fresh.tags else list(previous.tags),
        note_date=fresh.note_date or previous.note_date,
    )


class RefreshMerger:
    """
    Session-scoped holder of the last-known enriched member list.

    Only its owner (MembershipService) calls merge() and apply_annotation();
    readers get copies through records().
    """

    def __init__(self, records: Optional[Sequence[MemberRecord]] = None):
        self._records: List[MemberRecord] = list(records or [])

    def records(self) -> List[MemberRecord]:
        return list(self._records)

    def is_empty(self) -> bool:
        return not self._records

    def merge(self, fresh_records: Sequence[MemberRecord]) -> List[MemberRecord]:
        """
        Merge a freshly fetched list into the held state and return it.

        First load (empty state) takes the fresh list as is. Afterwards each
        fresh record is matched by unique ID to a previous record that
        carried comments, notes or tags.
        """
        if not self._records:
            self._records = list(fresh_records)
            logger.info(f"[RefreshMerger] Initial load with {len(self._records)} records")
            return self.records()

        annotated: Dict[str, MemberRecord] = {
            record.unique_id: record
            for record in self._records
            if record.unique_id and record.has_annotation()
        }

        merged = []
        preserved = 0
        for fresh in fresh_records:
            previous = annotated.get(fresh.unique_id) if fresh.unique_id else None
            if previous is None:
                merged.append(fresh)
                continue

            result = merge_annotation_fields(previous, fresh)
            if (result.comments, result.notes, result.tags, result.note_date) != (
                fresh.comments, fresh.notes, fresh.tags, fresh.note_date
            ):
                preserved += 1
            merged.append(result)

        self._records = merged
        logger.info(
            f"[RefreshMerger] Merged {len(merged)} records, kept local annotations on {preserved}"
        )
        return self.records()

    def apply_annotation(
        self,
        unique_id: str,
        comments: str,
        notes: str,
        tags: Sequence[str],
        note_date: str,
        now: Optional[datetime] = None
    ) -> Optional[MemberRecord]:
        """
        Overlay a successfully saved annotation on the held record.

        A blank note date keeps the held one, or is stamped with now when
        the held record has none either.

        Returns:
            The updated record, or None if no held record has this unique ID
        """
        updated = None
        for index, record in enumerate(self._records):
            if record.unique_id == unique_id:
                updated = replace(
                    record,
                    comments=comments,
                    notes=notes,
                    tags=list(tags),
                    note_date=note_date or record.note_date or format_timestamp(now or utc_now()),
                )
                self._records[index] = updated

        if updated is None:
            logger.debug(f"[RefreshMerger] No held record for {unique_id}; nothing to overlay")
        return updated

    def clear(self) -> None:
        self._records = []
