"""
Member annotation endpoints.

Annotations (comments, notes, tags, note date) are stored in the annotation
feed keyed by the member's unique ID and overlaid on the member list.
"""

from datetime import datetime
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List

from dashboard.logics.exceptions import DashboardException
from dashboard.logics.note_composer import DateNote, compose_annotation_text, normalize_tags
from dashboard.api.dependencies import get_logger, get_membership_service
from dashboard.api.utils.responses import success_response, error_response

router = APIRouter()
logger = get_logger(__name__)


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DateNoteRequest(_CamelRequest):
    date: datetime
    note: str
    type: str = "internal"
    title: str = ""


class AnnotationRequest(_CamelRequest):
    """
    Body of PUT /api/annotations/{unique_id}.

    dateNotes are folded into comments/notes as "[Mon DD, YYYY] Title: text"
    lines before saving.
    """
    member_id: str = ""
    email: str = ""
    comments: str = ""
    notes: str = ""
    tags: List[str] = Field(default_factory=list)
    note_date: str = ""
    date_notes: List[DateNoteRequest] = Field(default_factory=list)


@router.get("/api/annotations/{unique_id}")
def get_annotation(unique_id: str):
    """
    Stored annotation for one unique ID.

    Responses:
        200: {"success": true, "data": {uniqueId, memberId, email, comments, ...}}
        404: No annotation row for this ID
    """
    try:
        annotation = get_membership_service().get_annotation(unique_id)
    except DashboardException as e:
        logger.warning(f"[Annotations] Lookup failed for {unique_id}: {e.message}")
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())

    if annotation is None:
        raise HTTPException(
            status_code=404,
            detail=error_response(f"No annotation found for {unique_id}")
        )
    return success_response(annotation.to_dict())


@router.put("/api/annotations/{unique_id}")
def save_annotation(unique_id: str, request: AnnotationRequest):
    """
    Save (replace or append) the annotation row for unique_id.

    Responses:
        200: Saved annotation with its lastUpdated timestamp
        400: Unknown date note type
        502: Annotation store write failed; the member list is not changed
    """
    try:
        entries = [
            DateNote(date=n.date, note=n.note, type=n.type, title=n.title)
            for n in request.date_notes
        ]
        comments, notes = compose_annotation_text(request.comments, request.notes, entries)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=error_response(str(e)))

    try:
        saved = get_membership_service().save_annotation(
            unique_id,
            request.member_id,
            request.email,
            comments,
            notes,
            normalize_tags(request.tags),
            request.note_date,
        )
        return success_response(saved.to_dict(), message="Annotation saved")

    except DashboardException as e:
        logger.error(f"[Annotations] Save failed for {unique_id}: {e.message}")
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
    except Exception as e:
        logger.error(f"[Annotations] Unexpected error saving {unique_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=error_response(f"Unexpected error: {str(e)}")
        )
