# app/database/subscription_repository.py
import asyncpg
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from app.database.base_repository import CollectionRepository
from app.errors import ConflictError
import logging

logger = logging.getLogger(__name__)

ALREADY_SUBSCRIBED = "This email is already subscribed to our newsletter"

class SubscriptionRepository(CollectionRepository):
    table = "email_subscriptions"
    timestamp_column = "subscription_date"
    filter_columns = frozenset({"status", "source", "is_verified"})
    groupable_columns = frozenset({"status", "source"})
    search_columns = ("email",)

    async def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        result = await self.conn.fetchrow(
            "SELECT * FROM email_subscriptions WHERE email = $1",
            email
        )
        return dict(result) if result else None

    async def get(self, subscription_id: UUID) -> Optional[Dict[str, Any]]:
        result = await self.conn.fetchrow(
            "SELECT * FROM email_subscriptions WHERE id = $1",
            subscription_id
        )
        return dict(result) if result else None

    async def create(
        self,
        email: str,
        source: str,
        preferences: Dict[str, bool],
        metadata: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Insert a verified, active subscription"""
        try:
            result = await self.conn.fetchrow("""
                INSERT INTO email_subscriptions (
                    email, source, status, preferences, metadata,
                    subscription_date, is_verified, verified_at
                ) VALUES ($1, $2, 'active', $3::jsonb, $4::jsonb, NOW(), true, NOW())
                RETURNING *
            """, email, source, preferences, metadata)
        except asyncpg.UniqueViolationError:
            # A concurrent subscribe for the same address won the insert
            logger.warning(f"Duplicate subscription insert rejected: {email}")
            raise ConflictError(ALREADY_SUBSCRIBED)

        logger.info(f"Email subscription created: {email} from {source}")
        return dict(result)

    async def reactivate(
        self,
        email: str,
        source: str,
        preferences: Dict[str, bool],
        metadata: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Bring a non-active subscription back; None if it is already active"""
        result = await self.conn.fetchrow("""
            UPDATE email_subscriptions SET
                status = 'active',
                subscription_date = NOW(),
                unsubscription_date = NULL,
                unsubscription_reason = NULL,
                source = $2,
                preferences = preferences || $3::jsonb,
                metadata = metadata || $4::jsonb,
                updated_at = NOW()
            WHERE email = $1 AND status <> 'active'
            RETURNING *
        """, email, source, preferences, metadata)

        if result:
            logger.info(f"Reactivated subscription: {email}")
        return dict(result) if result else None

    async def unsubscribe(self, email: str, reason: str) -> Optional[Dict[str, Any]]:
        """Mark as unsubscribed; None if it already was"""
        result = await self.conn.fetchrow("""
            UPDATE email_subscriptions SET
                status = 'unsubscribed',
                unsubscription_date = NOW(),
                unsubscription_reason = $2,
                updated_at = NOW()
            WHERE email = $1 AND status <> 'unsubscribed'
            RETURNING *
        """, email, reason)

        if result:
            logger.info(f"Unsubscribed: {email}")
        return dict(result) if result else None

    async def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10
    ) -> List[Dict[str, Any]]:
        where, params = self._where(filters, search)
        param_count = len(params) + 1

        rows = await self.conn.fetch(f"""
            SELECT * FROM email_subscriptions{where}
            ORDER BY subscription_date DESC
            LIMIT ${param_count} OFFSET ${param_count + 1}
        """, *params, limit, offset)
        return [dict(row) for row in rows]

    async def update(
        self,
        subscription_id: UUID,
        status: Optional[str] = None,
        preferences: Optional[Dict[str, bool]] = None,
        tags: Optional[List[str]] = None
    ) -> Optional[Dict[str, Any]]:
        """Admin update: merge preferences, replace tags, keep status dates consistent"""
        result = await self.conn.fetchrow("""
            UPDATE email_subscriptions SET
                status = COALESCE($2, status),
                unsubscription_date = CASE
                    WHEN $2 = 'unsubscribed' THEN COALESCE(unsubscription_date, NOW())
                    WHEN $2 = 'active' THEN NULL
                    ELSE unsubscription_date
                END,
                unsubscription_reason = CASE
                    WHEN $2 = 'active' THEN NULL
                    ELSE unsubscription_reason
                END,
                preferences = preferences || COALESCE($3::jsonb, '{}'::jsonb),
                tags = COALESCE($4::text[], tags),
                updated_at = NOW()
            WHERE id = $1
            RETURNING *
        """, subscription_id, status, preferences, tags)
        return dict(result) if result else None

    async def engagement_summary(self, since: Optional[datetime] = None) -> Dict[str, Any]:
        """Totals and mean engagement rate over active, verified subscriptions"""
        where, params = self._where({"status": "active", "is_verified": True}, since=since)
        result = await self.conn.fetchrow(f"""
            SELECT
                COUNT(*) AS total_subscribers,
                COALESCE(SUM(emails_sent), 0) AS total_emails_sent,
                COALESCE(SUM(emails_opened), 0) AS total_emails_opened,
                COALESCE(SUM(emails_clicked), 0) AS total_emails_clicked,
                COALESCE(AVG(
                    CASE WHEN emails_sent = 0 THEN 0
                         ELSE ROUND(100.0 * emails_opened / emails_sent)
                    END
                ), 0) AS avg_engagement_rate
            FROM email_subscriptions{where}
        """, *params)

        summary = dict(result)
        summary['avg_engagement_rate'] = round(float(summary['avg_engagement_rate']), 2)
        return summary

    async def recent(self, limit: int = 5) -> List[Dict[str, Any]]:
        rows = await self.conn.fetch("""
            SELECT id, email, status, source, subscription_date
            FROM email_subscriptions
            ORDER BY subscription_date DESC
            LIMIT $1
        """, limit)
        return [dict(row) for row in rows]
