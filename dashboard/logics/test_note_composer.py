"""
Tests for dated note composition and tag normalization.

Run with:
    python3 -m pytest dashboard/logics/test_note_composer.py -v
"""

from datetime import datetime

import pytest

from dashboard.logics.note_composer import (
    DateNote,
    compose_annotation_text,
    format_note_line,
    normalize_tags,
)


class TestFormatNoteLine:

    def test_default_title(self):
        entry = DateNote(date=datetime(2025, 6, 5), note="Asked about renewal", type="customer")
        assert format_note_line(entry) == "[Jun 05, 2025] Customer Note: Asked about renewal"

    def test_custom_title(self):
        entry = DateNote(date=datetime(2025, 6, 5), note="Call back", type="follow-up", title="Renewal")
        assert format_note_line(entry) == "[Jun 05, 2025] Renewal: Call back"


class TestComposeAnnotationText:

    def test_entries_are_routed_by_type(self):
        entries = [
            DateNote(date=datetime(2025, 6, 5), note="Happy with class", type="customer"),
            DateNote(date=datetime(2025, 6, 6), note="Discount offered", type="internal"),
            DateNote(date=datetime(2025, 6, 7), note="Call Friday", type="follow-up"),
        ]
        comments, notes = compose_annotation_text("Existing comment", "", entries)

        assert comments == "Existing comment\n[Jun 05, 2025] Customer Note: Happy with class"
        assert notes == (
            "[Jun 06, 2025] Internal Note: Discount offered\n"
            "[Jun 07, 2025] Follow-up Required: Call Friday"
        )

    def test_no_entries(self):
        assert compose_annotation_text("c", "n", []) == ("c", "n")

    def test_blank_entries_are_dropped(self):
        entries = [DateNote(date=datetime(2025, 6, 5), note="  ", type="internal")]
        assert compose_annotation_text("", "n", entries) == ("", "n")

    def test_unknown_type(self):
        entries = [DateNote(date=datetime(2025, 6, 5), note="x", type="gossip")]
        with pytest.raises(ValueError):
            compose_annotation_text("", "", entries)


class TestNormalizeTags:

    def test_trims_and_deduplicates(self):
        assert normalize_tags([" vip ", "vip", "", "renewal"]) == ["vip", "renewal"]
