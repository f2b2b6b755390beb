"""
Membership data service.

Runs the full pipeline (fetch -> parse -> reconcile), owns the Refresh
Merger state and persists annotations. One instance per process is handed
to the routers through api.dependencies.

Failure policy:
    - member feed down: keep the previously merged list, or serve the
      sample dataset when nothing was loaded yet
    - annotation feed down: load members with zero annotations
    - annotation write failed: raise WriteError, cached view untouched
"""

import logging
from datetime import datetime
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from dashboard.logics.annotation_store import AnnotationStoreAdapter
from dashboard.logics.cache_utils import TTLCache
from dashboard.logics.date_utils import format_timestamp, utc_now
from dashboard.logics.exceptions import FetchError
from dashboard.logics.filter_engine import apply_filters, apply_quick_filters
from dashboard.logics.models import AnnotationRecord, FilterOptions, MemberRecord
from dashboard.logics.reconciler import reconcile
from dashboard.logics.refresh_merger import RefreshMerger
from dashboard.logics.row_parser import parse_member_rows
from dashboard.logics.sample_data import get_sample_records

logger = logging.getLogger(__name__)

MEMBERS_KEY = "members:v1"

# Sample/stale results are retried sooner than a normal refresh interval
FALLBACK_TTL_SECONDS = 30


class MembershipService:
    """
    Args:
        source: FeedSource providing member and annotation rows
        cache: TTLCache holding the merged member list between refreshes
        merger: RefreshMerger state (a fresh one by default)
        clock: Returns the current naive UTC datetime
        on_change: Called after the member list or an annotation changed
    """

    def __init__(
        self,
        source,
        cache: Optional[TTLCache] = None,
        merger: Optional[RefreshMerger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        on_change: Optional[Callable[[], Any]] = None
    ):
        self.source = source
        self.clock = clock or utc_now
        self.annotations = AnnotationStoreAdapter(source, clock=self.clock)
        self.merger = merger or RefreshMerger()
        self.cache = cache or TTLCache(max_size=4, ttl_seconds=300)
        self.on_change = on_change
        self.lock = RLock()
        self.last_refresh: Dict[str, Any] = {
            "refreshed_at": None,
            "data_source": None,
            "fallback": None,
            "error": None,
        }

    # ============ Pipeline ============

    def _load(self) -> Tuple[List[MemberRecord], Optional[FetchError]]:
        """Fetch, parse and reconcile; on member feed failure return the sample set and the error."""
        sync_time = format_timestamp(self.clock())
        try:
            raw_rows = self.source.fetch_member_rows()
        except FetchError as e:
            logger.error(f"[MembershipService] {e.message}")
            return get_sample_records(), e

        lookup = self.annotations.load_lookup()
        parsed = parse_member_rows(raw_rows)
        records = reconcile(parsed, lookup, data_source=self.source.name, last_sync=sync_time)
        return records, None

    def get_membership_data(self) -> List[MemberRecord]:
        """
        Full pipeline without the merger: fetch + parse + reconcile.

        Falls back to the sample dataset when the member feed is down.
        """
        records, _ = self._load()
        return records

    def refresh(self) -> List[MemberRecord]:
        """
        Refetch the member feed and merge it into the held state.

        Returns:
            The merged list (or the fallback list when the feed is down)
        """
        records, error = self._load()
        refreshed_at = format_timestamp(self.clock())

        with self.lock:
            if error is not None:
                if not self.merger.is_empty():
                    result = self.merger.records()
                    fallback = "previous"
                else:
                    result = records
                    fallback = "sample"
                logger.warning(f"[MembershipService] Member feed unavailable, serving {fallback} data")
                self.cache.set(MEMBERS_KEY, result, ttl=FALLBACK_TTL_SECONDS)
            else:
                result = self.merger.merge(records)
                fallback = None
                self.cache.set(MEMBERS_KEY, result)

            self.last_refresh = {
                "refreshed_at": refreshed_at,
                "data_source": result[0].data_source if result else self.source.name,
                "fallback": fallback,
                "error": error.to_dict() if error is not None else None,
            }

        self._notify_change()
        return result

    def get_records(self) -> List[MemberRecord]:
        """Merged member list, refreshed when the cached copy has expired."""
        cached = self.cache.get(MEMBERS_KEY)
        if cached is not None:
            return list(cached)
        return self.refresh()

    # ============ Annotations ============

    def get_annotation(self, unique_id: str) -> Optional[AnnotationRecord]:
        return self.annotations.get_annotation(unique_id)

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
        Persist an annotation, then overlay it on the held member list.

        Raises:
            WriteError: If the store write fails; nothing local is changed
        """
        saved = self.annotations.save_annotation(
            unique_id, member_id, email, comments, notes, tags, note_date
        )

        with self.lock:
            updated = self.merger.apply_annotation(
                unique_id, saved.comments, saved.notes, saved.tags, saved.note_date,
                now=self.clock()
            )
            if updated is not None and self.cache.get(MEMBERS_KEY) is not None:
                self.cache.set(MEMBERS_KEY, self.merger.records())

        logger.info(f"[MembershipService] Saved annotation for {unique_id}")
        self._notify_change()
        return saved

    # ============ Filtering ============

    def apply_filters(
        self,
        records: Sequence[MemberRecord],
        options: Optional[FilterOptions],
        now: Optional[datetime] = None
    ) -> List[MemberRecord]:
        return apply_filters(records, options, now or self.clock())

    def apply_quick_filters(
        self,
        records: Sequence[MemberRecord],
        tokens: Sequence[str],
        now: Optional[datetime] = None
    ) -> List[MemberRecord]:
        return apply_quick_filters(records, tokens, now or self.clock())

    def _notify_change(self) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change()
        except Exception as e:
            logger.error(f"[MembershipService] Change callback failed: {e}", exc_info=True)
