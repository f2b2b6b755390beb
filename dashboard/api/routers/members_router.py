"""
Member list endpoints.

Provides endpoints for:
- Merged member list with search, sort and pagination
- Structured and quick filters with optional grouping
- Filter sidebar option lists and quick-filter counts
- Manual refresh of the member feed and cache clearing
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional

from dashboard.cache import (
    views_cache,
    clear_all_caches,
    FILTER_OPTIONS_CACHE_KEY,
    SUMMARY_CACHE_KEY,
)
from dashboard.logics.exceptions import DashboardException
from dashboard.logics.filter_engine import quick_filter_counts, validate_filter_options
from dashboard.logics.member_views import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SORT_DIRECTION,
    DEFAULT_SORT_FIELD,
    available_filter_options,
    group_records,
    paginate,
    search_records,
    sort_records,
)
from dashboard.logics.models import FilterOptions
from dashboard.api.dependencies import get_logger, get_membership_service
from dashboard.api.utils.responses import success_response, error_response, paginated_response
from dashboard.api.utils.validators import validate_pagination, validate_sort

router = APIRouter()
logger = get_logger(__name__)


class MemberFilterRequest(BaseModel):
    """Body of POST /api/members/filter (camelCase keys accepted)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    filters: Optional[FilterOptions] = None
    quick_filters: List[str] = Field(default_factory=list)
    search: Optional[str] = None
    sort_by: str = DEFAULT_SORT_FIELD
    sort_direction: str = DEFAULT_SORT_DIRECTION
    limit: int = DEFAULT_PAGE_SIZE
    offset: int = 0


def _domain_error(e: DashboardException, action: str) -> HTTPException:
    logger.warning(f"[Members] {action} failed: {e.message}")
    return HTTPException(status_code=e.http_status, detail=e.to_dict())


def _unexpected_error(e: Exception, action: str) -> HTTPException:
    logger.error(f"[Members] Unexpected error during {action}: {e}", exc_info=True)
    return HTTPException(
        status_code=500,
        detail=error_response(f"Unexpected error: {str(e)}")
    )


@router.get("/api/members")
def list_members(
    search: Optional[str] = None,
    sort_by: str = DEFAULT_SORT_FIELD,
    sort_direction: str = DEFAULT_SORT_DIRECTION,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0
):
    """
    Merged member list.

    Query Parameters:
        search: Case-insensitive substring across all fields
        sort_by: camelCase field name (default: endDate)
        sort_direction: asc | desc (default: desc)
        limit / offset: pagination (default 15 per page)

    Returns:
        Paginated envelope of camelCase member records plus "meta" with the
        last refresh status (refreshed_at, data_source, fallback, error).
    """
    limit, offset = validate_pagination(limit, offset)
    sort_by, sort_direction = validate_sort(sort_by, sort_direction)

    try:
        service = get_membership_service()
        records = service.get_records()
        records = search_records(records, search)
        records = sort_records(records, sort_by, sort_direction)
        page = paginate(records, limit, offset)

        response = paginated_response([r.to_dict() for r in page], len(records), limit, offset)
        response["meta"] = service.last_refresh
        return response

    except DashboardException as e:
        raise _domain_error(e, "member list")
    except Exception as e:
        raise _unexpected_error(e, "member list")


@router.post("/api/members/filter")
def filter_members(request: MemberFilterRequest):
    """
    Apply structured filters, then quick filters, then search and sort.

    Request Body:
        {
            "filters": {"status": ["Active"], "sessionsRange": {"min": 1}, "groupBy": "location", ...},
            "quickFilters": ["active", "location-Supreme HQ, Bandra"],
            "search": "...", "sortBy": "endDate", "sortDirection": "desc",
            "limit": 15, "offset": 0
        }

    Returns:
        Paginated envelope when groupBy is "none"; otherwise
        {"success": true, "total": N, "groupBy": "...", "groups": [{"name", "count", "records"}]}
    """
    limit, offset = validate_pagination(request.limit, request.offset)
    sort_by, sort_direction = validate_sort(request.sort_by, request.sort_direction)
    options = request.filters or FilterOptions()

    try:
        validate_filter_options(options)

        service = get_membership_service()
        now = service.clock()
        records = service.get_records()
        records = service.apply_filters(records, options, now)
        records = service.apply_quick_filters(records, request.quick_filters, now)
        records = search_records(records, request.search)
        records = sort_records(records, sort_by, sort_direction)

        logger.info(
            f"[Members] Filter request: {len(records)} records match, "
            f"quick filters {request.quick_filters}, group by {options.group_by}"
        )

        if options.group_by and options.group_by != "none":
            groups = group_records(records, options.group_by, now)
            return {
                "success": True,
                "total": len(records),
                "groupBy": options.group_by,
                "groups": [
                    {"name": name, "count": len(members), "records": [r.to_dict() for r in members]}
                    for name, members in groups.items()
                ],
            }

        page = paginate(records, limit, offset)
        return paginated_response([r.to_dict() for r in page], len(records), limit, offset)

    except DashboardException as e:
        raise _domain_error(e, "filter")
    except Exception as e:
        raise _unexpected_error(e, "filter")


@router.get("/api/members/filters")
def get_filter_options():
    """
    Option lists for the filter sidebar.

    Cache:
        TTL: 5 minutes (cleared on refresh and on saved annotations)
        Key: "filters:v1"
    """
    try:
        service = get_membership_service()

        def build():
            records = service.get_records()
            return available_filter_options(records, service.clock())

        options = views_cache.get_or_load(FILTER_OPTIONS_CACHE_KEY, build)
        return success_response(options)

    except DashboardException as e:
        raise _domain_error(e, "filter options")
    except Exception as e:
        raise _unexpected_error(e, "filter options")


@router.get("/api/members/summary")
def get_quick_filter_summary():
    """
    Counts for "all", every quick-filter token and every location token.

    Cache:
        Key: "summary:v1"
    """
    try:
        service = get_membership_service()

        def build():
            return quick_filter_counts(service.get_records(), service.clock())

        counts = views_cache.get_or_load(SUMMARY_CACHE_KEY, build)
        return success_response(counts)

    except DashboardException as e:
        raise _domain_error(e, "summary")
    except Exception as e:
        raise _unexpected_error(e, "summary")


@router.post("/api/members/refresh")
def refresh_members():
    """Force a refetch of the member feed through the refresh merger."""
    try:
        service = get_membership_service()
        records = service.refresh()
        return success_response(
            {"total": len(records), **service.last_refresh},
            message="Member data refreshed"
        )

    except DashboardException as e:
        raise _domain_error(e, "refresh")
    except Exception as e:
        raise _unexpected_error(e, "refresh")


@router.post("/api/cache/clear")
def clear_cache():
    """Clear all caches; the next read refetches the member feed."""
    result = clear_all_caches()
    logger.info(f"[Members] Caches cleared on request: {result}")
    return success_response(result, message="Caches cleared")
