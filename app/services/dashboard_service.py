# app/services/dashboard_service.py
from datetime import datetime
from typing import Any, Dict, Optional
from app.database.contact_repository import ContactRepository
from app.database.subscription_repository import SubscriptionRepository
from app.database.user_repository import UserRepository
from app.auth.models import UserRole
from app.services.stats_service import (
    TimeWindows,
    collection_stats,
    engagement_response,
    growth_series,
    resolve_period,
    top_values,
    utc_now,
)
import logging

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5
TOP_SOURCES_LIMIT = 10

class DashboardService:
    """Read-only composition of the per-collection statistics"""

    def __init__(
        self,
        contacts: ContactRepository,
        subscriptions: SubscriptionRepository,
        users: UserRepository
    ):
        self.contacts = contacts
        self.subscriptions = subscriptions
        self.users = users

    async def overview(self, period: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utc_now()
        period, since = resolve_period(period, now)

        contact_stats = await collection_stats(self.contacts, ["status", "priority"], now)

        email_stats = await collection_stats(self.subscriptions, ["status", "source"], now)
        email_stats["active"] = await self.subscriptions.count({"status": "active"})

        recent_contacts = await self.contacts.recent(RECENT_LIMIT)
        recent_subscriptions = await self.subscriptions.recent(RECENT_LIMIT)

        return {
            "period": period,
            "contacts": contact_stats,
            "emails": email_stats,
            "users": await self._user_stats(now),
            "recent": {
                "contacts": [
                    {
                        "id": row["id"],
                        "name": row["name"],
                        "email": row["email"],
                        "status": row["status"],
                        "priority": row["priority"],
                        "createdAt": row["created_at"],
                    }
                    for row in recent_contacts
                ],
                "subscriptions": [
                    {
                        "id": row["id"],
                        "email": row["email"],
                        "status": row["status"],
                        "source": row["source"],
                        "subscriptionDate": row["subscription_date"],
                    }
                    for row in recent_subscriptions
                ],
            },
            "growth": {
                "contacts": await growth_series(self.contacts, since),
                "emails": await growth_series(self.subscriptions, since),
            },
        }

    async def analytics(self, period: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utc_now()
        period, since = resolve_period(period, now)

        engagement = await self.subscriptions.engagement_summary(since=since)
        contact_sources = await self.contacts.count_by("source", since=since)
        email_sources = await self.subscriptions.count_by("source", since=since)

        return {
            "period": period,
            "dateRange": since,
            "contactFunnel": await self.contacts.count_by("status", since=since),
            "emailEngagement": engagement_response(engagement, include_subscribers=True),
            "topSources": {
                "contacts": top_values(contact_sources, "source", TOP_SOURCES_LIMIT),
                "emails": top_values(email_sources, "source", TOP_SOURCES_LIMIT),
            },
            "growth": {
                "contacts": await growth_series(self.contacts, since),
                "emails": await growth_series(self.subscriptions, since),
            },
        }

    async def _user_stats(self, now: datetime) -> Dict[str, int]:
        windows = TimeWindows.anchored_at(now)
        return {
            "total": await self.users.count(),
            "active": await self.users.count({"status": "active"}),
            "admins": await self.users.count({"role": UserRole.ADMIN.value}),
            "thisMonth": await self.users.count_since(windows.this_month),
        }
