"""
Churn analytics endpoint.
"""

from fastapi import APIRouter, HTTPException

from dashboard.cache import views_cache, generate_churn_cache_key
from dashboard.logics.churn_analytics import DEFAULT_MONTHS, build_churn_report
from dashboard.api.dependencies import get_logger, get_membership_service
from dashboard.api.utils.responses import success_response, error_response
from dashboard.api.utils.validators import validate_months

router = APIRouter()
logger = get_logger(__name__)


@router.get("/api/analytics/churn")
def get_churn_report(months: int = DEFAULT_MONTHS):
    """
    Monthly churn metrics for the trailing window, insights and the
    current month's expirations.

    Query Parameters:
        months: Window length in months (default: 12, 1..36)

    Returns:
        {
            "success": true,
            "data": {
                "metrics": [{"month": "January 2026", "startingMembers": 10, "churnRate": 12.5, ...}],
                "currentMonth": {...},
                "previousMonth": {...},
                "insights": {"avgChurnRate": ..., "highRiskMembers": 2, "trend": "decreasing"},
                "currentMonthExpirations": [...]
            }
        }

    Cache:
        Key: "churn:v1:{months}"
    """
    months = validate_months(months)
    cache_key = generate_churn_cache_key(months)

    try:
        service = get_membership_service()

        def build():
            return build_churn_report(service.get_records(), service.clock(), months)

        report = views_cache.get_or_load(cache_key, build)
        logger.info(f"[Analytics] Churn report for {months} months ({len(report['metrics'])} rows)")
        return success_response(report)

    except Exception as e:
        logger.error(f"[Analytics] Error building churn report: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=error_response(f"Unexpected error: {str(e)}")
        )
