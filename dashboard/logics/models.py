"""
Typed records for the membership data pipeline.

MemberRecord and AnnotationRecord are plain dataclasses passed between the
parser, reconciler, merger and filter engine. FilterOptions is a pydantic
model because it arrives directly in request bodies.

JSON output keeps the camelCase field names the dashboard front end reads
(uniqueId, sessionsLeft, noteDate, ...).
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


STATUS_ACTIVE = "Active"
STATUS_EXPIRED = "Expired"
STATUSES = [STATUS_ACTIVE, STATUS_EXPIRED]

# Annotation sheet column order; positional, never looked up by header name
ANNOTATION_HEADERS = [
    "Unique ID",
    "Member ID",
    "Email",
    "Comments",
    "Notes",
    "Tags",
    "Note Date",
    "Last Updated",
    "Persistence Key",
]

TAG_DELIMITER = ", "


def _camel_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    return {to_camel(key): value for key, value in data.items()}


@dataclass
class AnnotationRecord:
    """
    One saved note set from the annotation store.

    Attributes:
        unique_id: Primary key (the member feed's first column)
        member_id: Member number, part of the fallback key
        email: Member email, part of the fallback key
        comments: Customer-facing comments
        notes: Internal notes
        tags: Tag list (", "-joined on the wire)
        note_date: ISO timestamp of the note, or ""
        last_updated: Server-assigned timestamp of the last save
        persistence_key: uniqueId-memberId-lower(email)
    """
    unique_id: str
    member_id: str = ""
    email: str = ""
    comments: str = ""
    notes: str = ""
    tags: List[str] = field(default_factory=list)
    note_date: str = ""
    last_updated: str = ""
    persistence_key: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return _camel_dict(asdict(self))


@dataclass
class ParsedMemberRow:
    """A decoded member feed row before annotations are attached."""
    unique_id: str
    member_id: str
    first_name: str
    last_name: str
    email: str
    membership_name: str
    end_date: str
    location: str
    sessions_left: int
    item_id: str
    order_date: str
    sold_by: str
    membership_id: str
    frozen: str
    paid: str
    status: str
    start_date: str = ""
    total_sessions_column: Optional[int] = None
    phone: str = ""
    address: str = ""


@dataclass
class MemberRecord:
    """
    One membership/order line enriched with its annotation overlay.

    Annotation fields default to empty values, never None. persistence_key
    and unique_identifier are diagnostic composites, not join keys.
    """
    unique_id: str
    member_id: str
    first_name: str
    last_name: str
    email: str
    membership_name: str
    end_date: str
    location: str
    sessions_left: int
    total_sessions: int
    status: str
    item_id: str = ""
    order_date: str = ""
    start_date: str = ""
    sold_by: str = ""
    membership_id: str = ""
    frozen: str = ""
    paid: str = ""
    phone: str = ""
    address: str = ""
    comments: str = ""
    notes: str = ""
    tags: List[str] = field(default_factory=list)
    note_date: str = ""
    persistence_key: str = ""
    unique_identifier: str = ""
    data_source: str = ""
    last_sync: str = ""

    def has_annotation(self) -> bool:
        return bool(self.comments or self.notes or self.tags)

    def to_dict(self) -> Dict[str, Any]:
        return _camel_dict(asdict(self))


# ============ Filter configuration ============

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DateRange(_CamelModel):
    """Inclusive date window; a missing bound is unbounded on that side."""
    start: Optional[str] = None
    end: Optional[str] = None


class IntRange(_CamelModel):
    """Inclusive integer window; a missing bound is unbounded on that side."""
    min: Optional[int] = None
    max: Optional[int] = None


class FilterOptions(_CamelModel):
    """
    Structured filter configuration.

    Each clause is skipped when its controlling option is empty/unset.
    group_by only affects grouping, never selection.
    """
    status: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)
    membership_types: List[str] = Field(default_factory=list)
    date_range: Optional[DateRange] = None
    joined_date_range: Optional[DateRange] = None
    sessions_range: Optional[IntRange] = None
    membership_usage: List[str] = Field(default_factory=list)
    days_lapsed: Optional[IntRange] = None
    payment_status: List[str] = Field(default_factory=list)
    group_by: str = "none"
