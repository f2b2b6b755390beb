"""
Integration tests for MembershipService over an InMemorySource.

Covers the full pipeline, the failure fallbacks (previous list, sample
dataset, zero annotations), save-then-refetch behaviour and cache updates.

Run with:
    python3 -m pytest dashboard/logics/test_membership_service.py -v
"""

import threading
import time
from datetime import datetime

import pytest

from dashboard.logics.cache_utils import TTLCache
from dashboard.logics.exceptions import WriteError
from dashboard.logics.membership_service import MEMBERS_KEY, MembershipService
from dashboard.logics.models import ANNOTATION_HEADERS, FilterOptions
from dashboard.logics.sample_data import SAMPLE_DATA_SOURCE
from dashboard.logics.sources import InMemorySource


FIXED_NOW = datetime(2025, 6, 15, 12, 0, 0)

MEMBER_HEADER = ["h"] * 16


def member_row(unique_id="U1", member_id="M1", email="jane@x.com", sessions_left="5", status="Active"):
    return [
        unique_id, member_id, "Jane", "Doe", email, "Plan A", "2024-01-10", "Loc1",
        sessions_left, "I1", "2023-01-10", "-", "-", "-", "-", status,
    ]


def make_service(member_rows=None, annotation_rows=None, on_change=None):
    rows = [MEMBER_HEADER] + (member_rows if member_rows is not None else [member_row()])
    source = InMemorySource(rows, annotation_rows)
    service = MembershipService(
        source,
        cache=TTLCache(max_size=4, ttl_seconds=300),
        clock=lambda: FIXED_NOW,
        on_change=on_change,
    )
    return source, service


class TestGetMembershipData:

    def test_scenario_row(self):
        _, service = make_service()
        [record] = service.get_membership_data()

        assert record.total_sessions == 8
        assert record.status == "Active"
        assert (record.comments, record.notes, record.tags, record.note_date) == ("", "", [], "")
        assert record.data_source == "memory"
        assert record.last_sync == "2025-06-15T12:00:00.000Z"

    def test_annotations_are_joined(self):
        annotations = [ANNOTATION_HEADERS, ["U1", "M1", "jane@x.com", "hello", "", "vip", "", "", ""]]
        _, service = make_service(annotation_rows=annotations)

        [record] = service.get_membership_data()
        assert record.comments == "hello"
        assert record.tags == ["vip"]

    def test_annotation_feed_failure_loads_members_without_annotations(self):
        annotations = [ANNOTATION_HEADERS, ["U1", "M1", "jane@x.com", "hello", "", "", "", "", ""]]
        source, service = make_service(annotation_rows=annotations)
        source.fail_annotation_fetch = True

        [record] = service.get_membership_data()
        assert record.unique_id == "U1"
        assert record.comments == ""

    def test_member_feed_failure_serves_sample_data(self):
        source, service = make_service()
        source.fail_member_fetch = True

        records = service.get_membership_data()
        assert records
        assert all(r.data_source == SAMPLE_DATA_SOURCE for r in records)


class TestRefresh:

    def test_refresh_populates_cache(self):
        _, service = make_service()
        records = service.refresh()

        assert [r.unique_id for r in records] == ["U1"]
        assert service.cache.get(MEMBERS_KEY) is not None
        assert service.last_refresh["fallback"] is None
        assert service.last_refresh["data_source"] == "memory"

    def test_member_feed_failure_keeps_previous_list(self):
        source, service = make_service()
        service.refresh()

        source.fail_member_fetch = True
        records = service.refresh()

        assert [r.unique_id for r in records] == ["U1"]
        assert service.last_refresh["fallback"] == "previous"
        assert service.last_refresh["error"]["success"] is False

    def test_member_feed_failure_without_history_serves_sample(self):
        source, service = make_service()
        source.fail_member_fetch = True

        records = service.refresh()

        assert all(r.data_source == SAMPLE_DATA_SOURCE for r in records)
        assert service.last_refresh["fallback"] == "sample"
        # Sample data is never held as merged state
        assert service.merger.is_empty()

    def test_get_records_loads_once(self):
        source, service = make_service()
        service.get_records()
        source.member_rows.append(member_row(unique_id="U2", member_id="M2"))

        assert [r.unique_id for r in service.get_records()] == ["U1"]

    def test_on_change_called(self):
        calls = []
        _, service = make_service(on_change=lambda: calls.append(1))
        service.refresh()
        assert calls == [1]


class TestSaveAnnotation:

    def test_save_then_refetch_shows_annotation(self):
        source, service = make_service(annotation_rows=None)
        service.refresh()

        service.save_annotation("U1", "M1", "jane@x.com", "called", "", ["vip"], "")
        records = service.refresh()

        assert records[0].comments == "called"
        assert records[0].tags == ["vip"]
        assert source.write_count == 1

    def test_save_updates_cached_list_immediately(self):
        _, service = make_service()
        service.get_records()

        service.save_annotation("U1", "M1", "jane@x.com", "called", "", [], "")

        assert service.get_records()[0].comments == "called"

    def test_stale_refetch_does_not_clear_saved_annotation(self):
        source, service = make_service(annotation_rows=[ANNOTATION_HEADERS])
        service.refresh()
        service.save_annotation("U1", "M1", "jane@x.com", "called", "", [], "")

        # The store snapshot predates the save
        source.annotation_rows = [list(ANNOTATION_HEADERS)]
        records = service.refresh()

        assert records[0].comments == "called"

    def test_write_failure_propagates_and_leaves_state(self):
        source, service = make_service()
        service.refresh()
        source.fail_write = True

        with pytest.raises(WriteError):
            service.save_annotation("U1", "M1", "jane@x.com", "called", "", [], "")

        assert service.get_records()[0].comments == ""
        assert service.merger.records()[0].comments == ""

    def test_get_annotation(self):
        _, service = make_service(annotation_rows=[ANNOTATION_HEADERS])
        service.save_annotation("U1", "M1", "jane@x.com", "called", "note", [], "")

        annotation = service.get_annotation("U1")
        assert annotation.notes == "note"
        assert annotation.last_updated == "2025-06-15T12:00:00.000Z"

    def test_concurrent_saves_for_different_members_are_both_stored(self):
        class SlowAnnotationSource(InMemorySource):
            def fetch_annotation_rows(self):
                rows = super().fetch_annotation_rows()
                time.sleep(0.2)
                return rows

        rows = [MEMBER_HEADER, member_row(), member_row(unique_id="U2", member_id="M2", email="raj@x.com")]
        source = SlowAnnotationSource(rows, [ANNOTATION_HEADERS])
        service = MembershipService(source, clock=lambda: FIXED_NOW)
        service.get_records()

        threads = [
            threading.Thread(target=service.save_annotation, args=("U1", "M1", "jane@x.com", "first", "", [], "")),
            threading.Thread(target=service.save_annotation, args=("U2", "M2", "raj@x.com", "second", "", [], "")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(row[0] for row in source.annotation_rows[1:]) == ["U1", "U2"]
        assert service.get_annotation("U1").comments == "first"
        assert service.get_annotation("U2").comments == "second"


class TestFilterDelegates:

    def test_apply_filters_and_quick_filters(self):
        rows = [
            member_row(unique_id="U1", sessions_left="0", status="Active"),
            member_row(unique_id="U2", member_id="M2", sessions_left="3", status="Active"),
            member_row(unique_id="U3", member_id="M3", sessions_left="0", status="Expired"),
        ]
        _, service = make_service(member_rows=rows)
        records = service.get_records()

        active = service.apply_filters(records, FilterOptions(status=["Active"]))
        assert [r.unique_id for r in active] == ["U1", "U2"]

        quick = service.apply_quick_filters(records, ["active", "no-sessions"])
        assert [r.unique_id for r in quick] == ["U1"]
