"""
Custom exceptions for the membership data pipeline.

Provides specific exception types for feed transport failures, malformed
cells and annotation persistence, with structured error messages, context,
and recommendations that routers turn into HTTP responses.
"""

from typing import Optional, Dict, Any


class DashboardException(Exception):
    """Base exception for membership dashboard operations."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        recommendation: Optional[str] = None,
        http_status: int = 400
    ):
        self.message = message
        self.context = context or {}
        self.recommendation = recommendation
        self.http_status = http_status
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to structured error response."""
        error_dict = {
            "success": False,
            "error": self.message
        }
        if self.context:
            error_dict["context"] = self.context
        if self.recommendation:
            error_dict["recommendation"] = self.recommendation
        return error_dict


class FetchError(DashboardException):
    """Raised when a feed (member rows or annotation rows) cannot be reached."""

    def __init__(self, feed: str, reason: str):
        super().__init__(
            message=f"Failed to fetch {feed} feed: {reason}",
            context={"feed": feed, "reason": reason},
            recommendation="Check that the data source is reachable and retry the refresh.",
            http_status=502
        )


class WriteError(DashboardException):
    """Raised when annotation rows cannot be persisted."""

    def __init__(self, reason: str, unique_id: Optional[str] = None):
        context = {"reason": reason}
        if unique_id is not None:
            context["unique_id"] = unique_id

        super().__init__(
            message=f"Failed to save annotation: {reason}",
            context=context,
            recommendation="The note was not saved. Retry the save before closing the editor.",
            http_status=502
        )


class AnnotationStoreNotFound(DashboardException):
    """Raised by sources when the annotation store has not been created yet."""

    def __init__(self, store: str):
        super().__init__(
            message=f"Annotation store not found: {store}",
            context={"store": store},
            recommendation="The store is created on the first saved annotation.",
            http_status=404
        )


class ParseError(DashboardException):
    """
    Raised when a single cell cannot be coerced to its field type.

    Never leaves the row parser: callers catch it and substitute the
    field's documented default.
    """

    def __init__(self, field: str, value: Any, expected: str):
        super().__init__(
            message=f"Cannot parse {field}={value!r} as {expected}",
            context={"field": field, "value": value, "expected": expected},
            http_status=422
        )


class InvalidFilterException(DashboardException):
    """Raised when a filter request carries an unusable value."""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid filter {field}: {reason}",
            context={"field": field, "value": value},
            recommendation="Correct the filter value and resubmit the request.",
            http_status=400
        )
