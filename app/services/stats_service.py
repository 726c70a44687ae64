# app/services/stats_service.py
"""Grouped counts, rolling windows and growth series over one collection.

Every call re-scans the table; window boundaries are computed in UTC from
``now`` and applied as lower bounds only.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

GROWTH_PERIODS = {
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "1y": 365,
}
DEFAULT_PERIOD = "30d"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TimeWindows:
    today: datetime
    this_week: datetime
    this_month: datetime
    this_year: datetime

    @classmethod
    def anchored_at(cls, now: Optional[datetime] = None) -> "TimeWindows":
        now = (now or utc_now()).astimezone(timezone.utc)
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return cls(
            today=midnight,
            this_week=now - timedelta(days=7),
            this_month=midnight.replace(day=1),
            this_year=midnight.replace(month=1, day=1),
        )


def resolve_period(period: Optional[str], now: Optional[datetime] = None) -> Tuple[str, datetime]:
    """Map a period label to its cutoff; unknown labels fall back to 30 days"""
    if period not in GROWTH_PERIODS:
        if period:
            logger.info(f"Unknown period {period!r}, using {DEFAULT_PERIOD}")
        period = DEFAULT_PERIOD
    now = now or utc_now()
    return period, now - timedelta(days=GROWTH_PERIODS[period])


def group_key(column: str) -> str:
    """status -> byStatus"""
    return "by" + column[:1].upper() + column[1:]


async def collection_stats(
    repo,
    group_by: Iterable[str],
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Total, windowed counts and per-category counts for one collection"""
    windows = TimeWindows.anchored_at(now)
    stats: Dict[str, Any] = {
        "total": await repo.count(),
        "today": await repo.count_since(windows.today),
        "thisWeek": await repo.count_since(windows.this_week),
        "thisMonth": await repo.count_since(windows.this_month),
        "thisYear": await repo.count_since(windows.this_year),
    }
    for column in group_by:
        stats[group_key(column)] = await repo.count_by(column)
    return stats


def engagement_response(summary: Dict[str, Any], include_subscribers: bool = False) -> Dict[str, Any]:
    """camelCase engagement block; every field is 0 when nothing matched"""
    engagement = {
        "totalEmailsSent": summary.get("total_emails_sent") or 0,
        "totalEmailsOpened": summary.get("total_emails_opened") or 0,
        "totalEmailsClicked": summary.get("total_emails_clicked") or 0,
        "avgEngagementRate": summary.get("avg_engagement_rate") or 0,
    }
    if include_subscribers:
        engagement = {"totalSubscribers": summary.get("total_subscribers") or 0, **engagement}
    return engagement


def top_values(counts: Dict[str, int], label: str, limit: int = 10) -> List[Dict[str, Any]]:
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [{label: value, "count": count} for value, count in ranked[:limit]]


async def growth_series(repo, since: datetime) -> List[Dict[str, Any]]:
    rows = await repo.daily_counts(since)
    return [{"date": row["date"].isoformat(), "count": row["count"]} for row in rows]
