"""
Tests for the Annotation Store Adapter.

Covers lookup construction (unique ID + fallback key), tag parsing and the
replace-or-append write path against an InMemorySource.

Run with:
    python3 -m pytest dashboard/logics/test_annotation_store.py -v
"""

from datetime import datetime

import pytest

from dashboard.logics.annotation_store import (
    AnnotationStoreAdapter,
    build_annotation_lookup,
    fallback_key,
    parse_tags,
    serialize_tags,
)
from dashboard.logics.exceptions import WriteError
from dashboard.logics.models import ANNOTATION_HEADERS
from dashboard.logics.sources import InMemorySource


FIXED_NOW = datetime(2025, 6, 15, 12, 0, 0)


def annotation_row(unique_id, member_id="M1", email="Jane@X.com", comments="", notes="", tags="", note_date=""):
    return [unique_id, member_id, email, comments, notes, tags, note_date, "", ""]


def make_adapter(annotation_rows=None):
    source = InMemorySource([], annotation_rows)
    return source, AnnotationStoreAdapter(source, clock=lambda: FIXED_NOW)


# ============================================================================
# Tags
# ============================================================================

class TestTags:

    def test_parse_drops_empty_entries(self):
        assert parse_tags("vip, , follow up") == ["vip", "follow up"]

    def test_parse_empty(self):
        assert parse_tags("") == []

    def test_serialize(self):
        assert serialize_tags(["vip", "follow up"]) == "vip, follow up"


# ============================================================================
# Lookup
# ============================================================================

class TestBuildAnnotationLookup:

    def test_keys_by_unique_id_and_fallback(self):
        rows = [ANNOTATION_HEADERS, annotation_row("U1", comments="hi")]
        lookup = build_annotation_lookup(rows)

        assert lookup["U1"].comments == "hi"
        assert lookup["M1-jane@x.com"] is lookup["U1"]

    def test_fallback_key_lowercases_email_only(self):
        assert fallback_key("M1", "Jane@X.com") == "M1-jane@x.com"

    def test_rows_without_unique_id_are_skipped(self):
        rows = [ANNOTATION_HEADERS, annotation_row("", comments="orphan")]
        assert build_annotation_lookup(rows) == {}

    def test_no_fallback_key_without_email(self):
        rows = [ANNOTATION_HEADERS, annotation_row("U1", email="")]
        lookup = build_annotation_lookup(rows)
        assert list(lookup) == ["U1"]

    def test_later_row_wins_on_shared_key(self):
        rows = [
            ANNOTATION_HEADERS,
            annotation_row("U1", comments="first"),
            annotation_row("U2", comments="second"),
        ]
        lookup = build_annotation_lookup(rows)

        assert lookup["U1"].comments == "first"
        assert lookup[fallback_key("M1", "jane@x.com")].comments == "second"

    def test_empty_feed(self):
        assert build_annotation_lookup([]) == {}
        assert build_annotation_lookup([ANNOTATION_HEADERS]) == {}

    def test_tags_are_split(self):
        rows = [ANNOTATION_HEADERS, annotation_row("U1", tags="vip, renewal")]
        assert build_annotation_lookup(rows)["U1"].tags == ["vip", "renewal"]


# ============================================================================
# Adapter reads
# ============================================================================

class TestAdapterReads:

    def test_missing_store_reads_as_header_only(self):
        _, adapter = make_adapter(annotation_rows=None)
        assert adapter.fetch_rows() == [list(ANNOTATION_HEADERS)]
        assert adapter.load_lookup() == {}

    def test_transport_failure_yields_empty_lookup(self):
        source, adapter = make_adapter([ANNOTATION_HEADERS, annotation_row("U1", comments="x")])
        source.fail_annotation_fetch = True
        assert adapter.load_lookup() == {}

    def test_get_annotation(self):
        _, adapter = make_adapter([ANNOTATION_HEADERS, annotation_row("U1", notes="called")])
        assert adapter.get_annotation("U1").notes == "called"
        assert adapter.get_annotation("U9") is None


# ============================================================================
# Adapter writes
# ============================================================================

class TestSaveAnnotation:

    def test_first_save_creates_store_with_header(self):
        source, adapter = make_adapter(annotation_rows=None)

        saved = adapter.save_annotation("U1", "M1", "Jane@X.com", "c", "n", ["vip"], "")

        assert source.annotation_rows[0] == list(ANNOTATION_HEADERS)
        assert len(source.annotation_rows) == 2
        assert source.annotation_rows[1][:6] == ["U1", "M1", "Jane@X.com", "c", "n", "vip"]
        assert saved.last_updated == "2025-06-15T12:00:00.000Z"
        assert saved.persistence_key == "U1-M1-jane@x.com"

    def test_save_twice_leaves_one_row_with_latest_content(self):
        source, adapter = make_adapter([ANNOTATION_HEADERS])

        adapter.save_annotation("U1", "M1", "jane@x.com", "first", "", [], "")
        adapter.save_annotation("U1", "M1", "jane@x.com", "second", "", ["a", "b"], "")

        data_rows = source.annotation_rows[1:]
        assert len(data_rows) == 1
        assert data_rows[0][3] == "second"
        assert data_rows[0][5] == "a, b"

    def test_replace_matches_exact_unique_id_only(self):
        rows = [ANNOTATION_HEADERS, annotation_row("U-old", comments="old")]
        source, adapter = make_adapter(rows)

        # Same member/email (fallback key) but a new unique ID appends
        adapter.save_annotation("U-new", "M1", "jane@x.com", "new", "", [], "")

        assert [row[0] for row in source.annotation_rows[1:]] == ["U-old", "U-new"]

    def test_other_rows_are_preserved(self):
        rows = [ANNOTATION_HEADERS, annotation_row("U1", comments="one"), annotation_row("U2", comments="two")]
        source, adapter = make_adapter(rows)

        adapter.save_annotation("U2", "M1", "jane@x.com", "updated", "", [], "")

        assert source.annotation_rows[1][3] == "one"
        assert source.annotation_rows[2][3] == "updated"

    def test_write_failure_raises_write_error(self):
        source, adapter = make_adapter([ANNOTATION_HEADERS])
        source.fail_write = True

        with pytest.raises(WriteError):
            adapter.save_annotation("U1", "M1", "jane@x.com", "c", "", [], "")

    def test_read_failure_raises_write_error(self):
        source, adapter = make_adapter([ANNOTATION_HEADERS])
        source.fail_annotation_fetch = True

        with pytest.raises(WriteError):
            adapter.save_annotation("U1", "M1", "jane@x.com", "c", "", [], "")
        assert source.write_count == 0

    def test_empty_unique_id_is_rejected(self):
        source, adapter = make_adapter([ANNOTATION_HEADERS])

        with pytest.raises(WriteError):
            adapter.save_annotation("", "M1", "jane@x.com", "c", "", [], "")
        assert source.write_count == 0
