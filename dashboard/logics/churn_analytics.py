"""
Churn analytics over the enriched member list.

Builds the trailing 12-month churn table (starting, new, expired and ending
members per calendar month with churn/retention rates) and headline
insights. Records with unparsable order or end dates are left out of the
month they cannot be placed in.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from dashboard.logics.date_utils import parse_timestamp, utc_now
from dashboard.logics.models import MemberRecord, STATUS_ACTIVE, STATUS_EXPIRED

logger = logging.getLogger(__name__)

DEFAULT_MONTHS = 12
HIGH_RISK_DAYS = 7


def records_to_frame(records: Sequence[MemberRecord]) -> pd.DataFrame:
    """Frame with parsed order/end dates (NaT when unparsable) and status."""
    frame = pd.DataFrame(
        {
            "unique_id": [r.unique_id for r in records],
            "status": [r.status for r in records],
            "order_date": [parse_timestamp(r.order_date) for r in records],
            "end_date": [parse_timestamp(r.end_date) for r in records],
        }
    )
    frame["order_date"] = pd.to_datetime(frame["order_date"])
    frame["end_date"] = pd.to_datetime(frame["end_date"])
    return frame


def _month_windows(now: datetime, months: int) -> List[Dict[str, Any]]:
    current = pd.Timestamp(year=now.year, month=now.month, day=1)
    windows = []
    for offset in range(months - 1, -1, -1):
        start = current - pd.DateOffset(months=offset)
        windows.append({
            "label": start.strftime("%B %Y"),
            "start": start,
            "next_start": start + pd.DateOffset(months=1),
        })
    return windows


def _rate(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0.0
    return round(numerator / denominator * 100, 2)


def monthly_churn_metrics(
    records: Sequence[MemberRecord],
    now: Optional[datetime] = None,
    months: int = DEFAULT_MONTHS
) -> List[Dict[str, Any]]:
    """
    Churn metrics for each of the trailing `months` calendar months.

    Per month:
        startingMembers: ordered before the month, ending on/after its first day
        newMembers: ordered within the month
        expiredMembers: Expired status with an end date within the month
        endingMembers: ordered by the month's end, ending after it
        churnRate / retentionRate: percent of starting members (2 decimals)
        netGrowth: newMembers - expiredMembers

    Returns:
        List oldest month first
    """
    now = now or utc_now()
    frame = records_to_frame(records)
    order = frame["order_date"]
    end = frame["end_date"]
    expired = frame["status"] == STATUS_EXPIRED

    metrics = []
    for window in _month_windows(now, months):
        start, next_start = window["start"], window["next_start"]

        starting = int(((order < start) & (end >= start)).sum())
        new = int(((order >= start) & (order < next_start)).sum())
        churned = int((expired & (end >= start) & (end < next_start)).sum())
        ending = int(((order < next_start) & (end >= next_start)).sum())

        metrics.append({
            "month": window["label"],
            "startingMembers": starting,
            "newMembers": new,
            "expiredMembers": churned,
            "endingMembers": ending,
            "churnRate": _rate(churned, starting),
            "churnCount": churned,
            "retentionRate": _rate(starting - churned, starting),
            "netGrowth": new - churned,
        })

    logger.debug(f"[ChurnAnalytics] Computed {len(metrics)} months over {len(frame)} records")
    return metrics


def high_risk_members(
    records: Sequence[MemberRecord],
    now: Optional[datetime] = None,
    within_days: int = HIGH_RISK_DAYS
) -> List[MemberRecord]:
    """Active members whose membership ends within the next `within_days` days."""
    now = now or utc_now()
    result = []
    for record in records:
        if record.status != STATUS_ACTIVE:
            continue
        end_date = parse_timestamp(record.end_date)
        if end_date is None:
            continue
        days_until = (end_date - now).total_seconds() / 86400
        if 0 < days_until <= within_days:
            result.append(record)
    return result


def current_month_expirations(records: Sequence[MemberRecord], now: Optional[datetime] = None) -> List[MemberRecord]:
    """Members whose end date falls in the current calendar month."""
    now = now or utc_now()
    result = []
    for record in records:
        end_date = parse_timestamp(record.end_date)
        if end_date is not None and end_date.year == now.year and end_date.month == now.month:
            result.append(record)
    return result


def churn_insights(
    metrics: Sequence[Dict[str, Any]],
    records: Sequence[MemberRecord],
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Averages across the metric window, net growth, high-risk count and trend."""
    if metrics:
        avg_churn = round(sum(m["churnRate"] for m in metrics) / len(metrics), 2)
        avg_retention = round(sum(m["retentionRate"] for m in metrics) / len(metrics), 2)
    else:
        avg_churn = avg_retention = 0.0

    trend = "stable"
    if len(metrics) >= 2:
        trend = "increasing" if metrics[-1]["churnRate"] > metrics[-2]["churnRate"] else "decreasing"

    return {
        "avgChurnRate": avg_churn,
        "avgRetentionRate": avg_retention,
        "totalNetGrowth": sum(m["netGrowth"] for m in metrics),
        "highRiskMembers": len(high_risk_members(records, now)),
        "trend": trend,
    }


def build_churn_report(
    records: Sequence[MemberRecord],
    now: Optional[datetime] = None,
    months: int = DEFAULT_MONTHS
) -> Dict[str, Any]:
    """Monthly metrics, insights and the current month's expirations in one payload."""
    now = now or utc_now()
    metrics = monthly_churn_metrics(records, now, months)
    expirations = current_month_expirations(records, now)
    return {
        "metrics": metrics,
        "currentMonth": metrics[-1] if metrics else None,
        "previousMonth": metrics[-2] if len(metrics) >= 2 else None,
        "insights": churn_insights(metrics, records, now),
        "currentMonthExpirations": [r.to_dict() for r in expirations],
    }
