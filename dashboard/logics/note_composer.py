"""
Folds dated note entries from the annotation editor into comments/notes.

Customer notes are appended to comments; internal and follow-up notes are
appended to notes. Each entry becomes one "[Mon DD, YYYY] Title: text" line.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Sequence, Tuple

NOTE_TYPE_CUSTOMER = "customer"
NOTE_TYPE_INTERNAL = "internal"
NOTE_TYPE_FOLLOW_UP = "follow-up"
NOTE_TYPES = [NOTE_TYPE_CUSTOMER, NOTE_TYPE_INTERNAL, NOTE_TYPE_FOLLOW_UP]

DEFAULT_TITLES = {
    NOTE_TYPE_CUSTOMER: "Customer Note",
    NOTE_TYPE_INTERNAL: "Internal Note",
    NOTE_TYPE_FOLLOW_UP: "Follow-up Required",
}


@dataclass
class DateNote:
    date: datetime
    note: str
    type: str
    title: str = ""


def format_note_line(entry: DateNote) -> str:
    title = entry.title or DEFAULT_TITLES.get(entry.type, "Note")
    return f"[{entry.date.strftime('%b %d, %Y')}] {title}: {entry.note}"


def _lines(entries: Sequence[DateNote], note_type: str) -> str:
    return "\n".join(
        format_note_line(e) for e in entries if e.type == note_type and e.note.strip()
    )


def compose_annotation_text(comments: str, notes: str, entries: Sequence[DateNote]) -> Tuple[str, str]:
    """
    Combine free-text fields with dated entries.

    Returns:
        (comments, notes) with empty parts dropped

    Raises:
        ValueError: If an entry has an unknown type
    """
    for entry in entries:
        if entry.type not in NOTE_TYPES:
            raise ValueError(f"Unknown note type: {entry.type}")

    all_comments = "\n".join(
        part for part in [comments, _lines(entries, NOTE_TYPE_CUSTOMER)] if part
    )
    all_notes = "\n".join(
        part for part in [
            notes,
            _lines(entries, NOTE_TYPE_INTERNAL),
            _lines(entries, NOTE_TYPE_FOLLOW_UP),
        ] if part
    )
    return all_comments, all_notes


def normalize_tags(tags: Sequence[str]) -> List[str]:
    """Trim tags and drop blanks and repeats, keeping first-seen order."""
    result: List[str] = []
    for tag in tags:
        cleaned = tag.strip()
        if cleaned and cleaned not in result:
            result.append(cleaned)
    return result
