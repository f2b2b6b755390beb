"""
Shared cache module for the membership pipeline and API routers.

Cache Instances:
    - members_cache: refresh-interval TTL, max 4 entries (merged member list)
    - views_cache: 5 minutes TTL, max 64 entries (filter options, summaries, churn reports)

Usage:
    from dashboard.cache import views_cache, clear_all_caches

    options = views_cache.get_or_load("filters:v1", build_options)
    clear_all_caches()
"""

from dashboard.logics.cache_utils import TTLCache
from dashboard.logics.membership_service import MEMBERS_KEY
from dashboard.settings import CACHE_TTL_MEMBERS, CACHE_TTL_FILTERS
import logging
from datetime import datetime

logger = logging.getLogger(__name__)

# Members cache: holds the merged member list between periodic refreshes
# Keys: "members:v1"
members_cache = TTLCache(max_size=4, ttl_seconds=CACHE_TTL_MEMBERS)

# Views cache: read-only views derived from the member list
# Keys: "filters:v1", "summary:v1", "churn:v1:{months}"
views_cache = TTLCache(max_size=64, ttl_seconds=CACHE_TTL_FILTERS)

MEMBERS_CACHE_KEY = MEMBERS_KEY
FILTER_OPTIONS_CACHE_KEY = "filters:v1"
SUMMARY_CACHE_KEY = "summary:v1"


def generate_churn_cache_key(months: int) -> str:
    """
    Generate cache key for churn reports.

    Examples:
        generate_churn_cache_key(12) -> "churn:v1:12"
    """
    return f"churn:v1:{months}"


def invalidate_member_views() -> int:
    """
    Invalidate everything derived from the member list.

    Called after every refresh and every saved annotation.

    Returns:
        Number of cache entries invalidated
    """
    count = views_cache.size()
    views_cache.clear()
    logger.info(f"[Cache] Invalidated {count} member view entries")
    return count


def clear_all_caches() -> dict:
    """
    Clear all caches; the next request refetches the member feed.

    Returns:
        Dictionary with cache statistics after clearing and the clear time
    """
    members_cache.clear()
    views_cache.clear()

    cleared_at = datetime.now().isoformat()
    logger.info(f"[Cache] Cleared all caches at {cleared_at}")

    return {
        "members_cache": members_cache.stats(),
        "views_cache": views_cache.stats(),
        "cleared_at": cleared_at,
    }


__all__ = [
    'members_cache',
    'views_cache',
    'MEMBERS_CACHE_KEY',
    'FILTER_OPTIONS_CACHE_KEY',
    'SUMMARY_CACHE_KEY',
    'generate_churn_cache_key',
    'invalidate_member_views',
    'clear_all_caches'
]
