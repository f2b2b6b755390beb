"""
Tests for the Refresh Merger.

Covers first load, merge non-regression (a refetch with an empty annotation
never clears a previously non-empty one) and the local overlay after a save.

Run with:
    python3 -m pytest dashboard/logics/test_refresh_merger.py -v
"""

from datetime import datetime

from dashboard.logics.models import MemberRecord
from dashboard.logics.refresh_merger import RefreshMerger, merge_annotation_fields


def make_record(unique_id="U1", comments="", notes="", tags=None, note_date="", sessions_left=5):
    return MemberRecord(
        unique_id=unique_id,
        member_id="M1",
        first_name="Jane",
        last_name="Doe",
        email="jane@x.com",
        membership_name="Plan A",
        end_date="2024-01-10T00:00:00.000Z",
        location="Loc1",
        sessions_left=sessions_left,
        total_sessions=8,
        status="Active",
        comments=comments,
        notes=notes,
        tags=list(tags or []),
        note_date=note_date,
    )


class TestMergeAnnotationFields:

    def test_empty_fresh_keeps_previous(self):
        previous = make_record(comments="c", notes="n", tags=["vip"], note_date="2025-01-01T00:00:00.000Z")
        result = merge_annotation_fields(previous, make_record())

        assert result.comments == "c"
        assert result.notes == "n"
        assert result.tags == ["vip"]
        assert result.note_date == "2025-01-01T00:00:00.000Z"

    def test_non_empty_fresh_wins(self):
        previous = make_record(comments="old")
        result = merge_annotation_fields(previous, make_record(comments="new"))
        assert result.comments == "new"

    def test_non_annotation_fields_come_from_fresh(self):
        previous = make_record(comments="c", sessions_left=5)
        result = merge_annotation_fields(previous, make_record(sessions_left=2))
        assert result.sessions_left == 2


class TestRefreshMerger:

    def test_first_load_takes_fresh_list(self):
        merger = RefreshMerger()
        fresh = [make_record("U1"), make_record("U2")]

        assert merger.is_empty()
        assert [r.unique_id for r in merger.merge(fresh)] == ["U1", "U2"]
        assert not merger.is_empty()

    def test_refetch_with_empty_annotation_keeps_previous(self):
        merger = RefreshMerger()
        merger.merge([make_record("U1", comments="saved", tags=["vip"])])

        merged = merger.merge([make_record("U1")])

        assert merged[0].comments == "saved"
        assert merged[0].tags == ["vip"]

    def test_refetch_order_and_membership_follow_fresh(self):
        merger = RefreshMerger()
        merger.merge([make_record("U1", comments="a"), make_record("U2", comments="b")])

        merged = merger.merge([make_record("U3"), make_record("U1")])

        assert [r.unique_id for r in merged] == ["U3", "U1"]
        assert merged[0].comments == ""
        assert merged[1].comments == "a"

    def test_previous_without_annotation_is_not_used(self):
        merger = RefreshMerger()
        merger.merge([make_record("U1", note_date="2025-01-01T00:00:00.000Z")])

        merged = merger.merge([make_record("U1")])

        # note_date alone does not make an annotated record
        assert merged[0].note_date == ""

    def test_records_without_unique_id_are_not_merged(self):
        merger = RefreshMerger()
        merger.merge([make_record("", comments="x")])

        merged = merger.merge([make_record("")])
        assert merged[0].comments == ""

    def test_apply_annotation_overlays_held_record(self):
        merger = RefreshMerger()
        merger.merge([make_record("U1"), make_record("U2")])

        updated = merger.apply_annotation("U2", "c", "n", ["t"], "2025-06-15T00:00:00.000Z")

        assert updated.comments == "c"
        assert merger.records()[1].tags == ["t"]
        assert merger.records()[0].comments == ""

    def test_apply_annotation_keeps_note_date_when_blank(self):
        merger = RefreshMerger()
        merger.merge([make_record("U1", note_date="2025-01-01T00:00:00.000Z")])

        updated = merger.apply_annotation("U1", "c", "", [], "")
        assert updated.note_date == "2025-01-01T00:00:00.000Z"

    def test_apply_annotation_stamps_note_date_when_none_held(self):
        merger = RefreshMerger()
        merger.merge([make_record("U1")])

        updated = merger.apply_annotation("U1", "c", "", [], "", now=datetime(2025, 6, 15, 12, 0, 0))
        assert updated.note_date == "2025-06-15T12:00:00.000Z"

    def test_apply_annotation_unknown_id(self):
        merger = RefreshMerger()
        merger.merge([make_record("U1")])
        assert merger.apply_annotation("U9", "c", "", [], "") is None

    def test_saved_annotation_survives_stale_refetch(self):
        merger = RefreshMerger()
        merger.merge([make_record("U1")])
        merger.apply_annotation("U1", "just saved", "", [], "")

        merged = merger.merge([make_record("U1")])
        assert merged[0].comments == "just saved"

    def test_records_returns_copy(self):
        merger = RefreshMerger()
        merger.merge([make_record("U1")])
        merger.records().clear()
        assert len(merger.records()) == 1

    def test_clear(self):
        merger = RefreshMerger([make_record("U1")])
        merger.clear()
        assert merger.is_empty()
