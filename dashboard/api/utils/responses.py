"""
Standard response formatters for API endpoints.

Provides consistent response structure across all API endpoints:
- Success responses with optional message
- Error responses with appropriate status codes
- Paginated responses with metadata
"""

from typing import Any, Dict, Optional, List


def success_response(data: Any = None, message: Optional[str] = None) -> Dict:
    """
    Create a standardized success response.

    Returns:
        {
            "success": true,
            "message": "...",  # Optional
            "data": {...}       # Optional
        }

    Examples:
        success_response({"uniqueId": "..."}, "Annotation saved")
        success_response(message="Caches cleared")
    """
    response = {"success": True}

    if message:
        response["message"] = message

    if data is not None:
        response["data"] = data

    return response


def error_response(message: str, details: Optional[Any] = None) -> Dict:
    """
    Create a standardized error response.

    The HTTPException status_code is set separately when raising.

    Examples:
        raise HTTPException(status_code=400, detail=error_response("Invalid sort direction"))
    """
    response = {
        "success": False,
        "error": message
    }

    if details is not None:
        response["details"] = details

    return response


def paginated_response(
    data: List[Any],
    total: int,
    limit: int,
    offset: int,
    message: Optional[str] = None
) -> Dict:
    """
    Create a standardized paginated response.

    Returns:
        {
            "success": true,
            "data": [...],
            "pagination": {
                "total": 150,
                "limit": 15,
                "offset": 0,
                "count": 15,       # Records in current page
                "has_more": true   # Whether more pages exist
            }
        }
    """
    response = {
        "success": True,
        "data": data,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(data),
            "has_more": (offset + len(data)) < total
        }
    }

    if message:
        response["message"] = message

    return response
