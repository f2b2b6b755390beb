"""
Shared dependencies for API routers.

Provides dependency injection for the membership service, its feed source
and loggers.
"""

import logging
from typing import Optional

from dashboard.settings import (
    SOURCE_BACKEND,
    WORKBOOK_PATH,
    MEMBER_SHEET,
    ANNOTATION_SHEET,
    ANNOTATION_BACKEND,
    get_database_url,
)
from dashboard.cache import members_cache, invalidate_member_views
from dashboard.logics.db import AnnotationDBManager, DatabaseAnnotationSource
from dashboard.logics.membership_service import MembershipService
from dashboard.logics.sample_data import SAMPLE_MEMBER_ROWS
from dashboard.logics.sources import (
    CompositeSource,
    FeedSource,
    InMemorySource,
    WorkbookSource,
)


# Initialize logger for API routers
def get_logger(name: str = "api") -> logging.Logger:
    """
    Get a logger instance for API routers.

    Usage in routers:
        from dashboard.api.dependencies import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


logger = get_logger(__name__)


def build_source_from_settings() -> FeedSource:
    """
    Build the feed source described by config.ini.

    [source] backend: "workbook" or "memory" (sample rows, no annotation store)
    [annotations] backend: "source" (same feed) or "database"

    Raises:
        ValueError: If a backend name is not recognized
    """
    if SOURCE_BACKEND == "workbook":
        source: FeedSource = WorkbookSource(WORKBOOK_PATH, MEMBER_SHEET, ANNOTATION_SHEET)
    elif SOURCE_BACKEND == "memory":
        source = InMemorySource(SAMPLE_MEMBER_ROWS)
    else:
        raise ValueError(f"Invalid source backend specified in config: {SOURCE_BACKEND}")

    if ANNOTATION_BACKEND == "source":
        return source
    if ANNOTATION_BACKEND == "database":
        db_source = DatabaseAnnotationSource(AnnotationDBManager(get_database_url()))
        return CompositeSource(source, db_source)
    raise ValueError(f"Invalid annotations backend specified in config: {ANNOTATION_BACKEND}")


# Membership service instance (singleton pattern)
_membership_service_instance: Optional[MembershipService] = None


def get_membership_service() -> MembershipService:
    """
    Get MembershipService singleton instance.

    Usage in routers:
        from dashboard.api.dependencies import get_membership_service
        service = get_membership_service()
    """
    global _membership_service_instance
    if _membership_service_instance is None:
        source = build_source_from_settings()
        logger.info(f"[Dependencies] Membership service using {source.name} source")
        _membership_service_instance = MembershipService(
            source,
            cache=members_cache,
            on_change=invalidate_member_views,
        )
    return _membership_service_instance


def set_membership_service(service: Optional[MembershipService]) -> None:
    """Replace the singleton (tests pass an InMemorySource-backed service, None resets)."""
    global _membership_service_instance
    _membership_service_instance = service
