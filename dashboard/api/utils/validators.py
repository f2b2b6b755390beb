"""
Request validation utilities for API endpoints.
"""

from typing import Tuple
from fastapi import HTTPException
from dashboard.api.utils.responses import error_response
from dashboard.logics.member_views import SORT_FIELDS


VALID_SORT_DIRECTIONS = ["asc", "desc"]


def validate_pagination(
    limit: int,
    offset: int,
    max_limit: int = 500
) -> Tuple[int, int]:
    """
    Validate and normalize pagination parameters.

    Returns:
        Tuple of (validated_limit, validated_offset)

    Raises:
        HTTPException: If limit < 1 or offset < 0 (400)

    Examples:
        limit, offset = validate_pagination(15, 0)
        limit, offset = validate_pagination(1000, 0)  # Normalizes to (500, 0)
    """
    errors = {}

    if limit < 1:
        errors["limit"] = "Must be at least 1"
    elif limit > max_limit:
        limit = max_limit

    if offset < 0:
        errors["offset"] = "Must be non-negative"

    if errors:
        raise HTTPException(
            status_code=400,
            detail=error_response("Invalid pagination parameters", errors)
        )

    return limit, offset


def validate_sort(sort_field: str, direction: str) -> Tuple[str, str]:
    """
    Validate sort parameters.

    Raises:
        HTTPException: If the field or direction is unknown (400)
    """
    if sort_field not in SORT_FIELDS:
        raise HTTPException(
            status_code=400,
            detail=error_response(
                f"Invalid sort field: {sort_field}",
                {"valid_sort_fields": list(SORT_FIELDS)}
            )
        )
    if direction not in VALID_SORT_DIRECTIONS:
        raise HTTPException(
            status_code=400,
            detail=error_response(
                f"Invalid sort direction: {direction}",
                {"valid_directions": VALID_SORT_DIRECTIONS}
            )
        )
    return sort_field, direction


def validate_months(months: int, min_months: int = 1, max_months: int = 36) -> int:
    """
    Validate the churn window length.

    Raises:
        HTTPException: If months is outside [min_months, max_months] (400)
    """
    if not min_months <= months <= max_months:
        raise HTTPException(
            status_code=400,
            detail=error_response(
                f"Invalid months: {months}",
                {"min_months": min_months, "max_months": max_months}
            )
        )
    return months
