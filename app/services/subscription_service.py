# app/services/subscription_service.py
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
from app.database.subscription_repository import ALREADY_SUBSCRIBED, SubscriptionRepository
from app.errors import ConflictError, InvalidStateError, NotFoundError
from app.models.common import Pagination
from app.models.subscription import (
    DEFAULT_PREFERENCES,
    EmailSubscription,
    SubscriptionMetadata,
    SubscriptionStatus,
    SubscriptionUpdate,
)
from app.services import stats_service
import logging

logger = logging.getLogger(__name__)

DEFAULT_UNSUBSCRIBE_REASON = "User requested"

# Metadata keys captured from the request; overwritten on every (re)subscribe
REQUEST_METADATA_KEYS = {"ip_address", "user_agent", "referrer"}


@dataclass
class SubscribeResult:
    subscription: EmailSubscription
    reactivated: bool = False


class SubscriptionService:
    """Email list lifecycle: at most one subscription per address"""

    def __init__(self, repository: SubscriptionRepository):
        self.repo = repository

    async def subscribe(
        self,
        email: str,
        source: str,
        preferences: Optional[Dict[str, bool]] = None,
        metadata: Optional[SubscriptionMetadata] = None
    ) -> SubscribeResult:
        """Create a subscription, or reactivate a non-active one.

        An active subscription for the address is a conflict and is left
        untouched. Reactivation merges the supplied preferences over the
        stored ones instead of resetting them to the defaults.
        """
        email = email.strip().lower()
        preferences = preferences or {}
        metadata = metadata or SubscriptionMetadata()

        existing = await self.repo.get_by_email(email)

        if existing is None:
            row = await self.repo.create(
                email=email,
                source=source,
                preferences={**DEFAULT_PREFERENCES, **preferences},
                metadata=metadata.model_dump(exclude_none=True)
            )
            return SubscribeResult(EmailSubscription.model_validate(row))

        if existing['status'] == SubscriptionStatus.ACTIVE.value:
            logger.info(f"User already subscribed: {email}")
            raise ConflictError(ALREADY_SUBSCRIBED)

        row = await self.repo.reactivate(
            email=email,
            source=source,
            preferences=preferences,
            metadata=metadata.model_dump(include=REQUEST_METADATA_KEYS)
        )
        if row is None:
            # Reactivated by a concurrent request between the read and the update
            raise ConflictError(ALREADY_SUBSCRIBED)

        return SubscribeResult(EmailSubscription.model_validate(row), reactivated=True)

    async def unsubscribe(self, email: str, reason: Optional[str] = None) -> EmailSubscription:
        email = email.strip().lower()

        existing = await self.repo.get_by_email(email)
        if existing is None:
            raise NotFoundError("Email not found in our subscription list")

        if existing['status'] == SubscriptionStatus.UNSUBSCRIBED.value:
            raise InvalidStateError("This email is already unsubscribed")

        row = await self.repo.unsubscribe(email, reason or DEFAULT_UNSUBSCRIBE_REASON)
        if row is None:
            raise InvalidStateError("This email is already unsubscribed")

        return EmailSubscription.model_validate(row)

    async def list_subscriptions(
        self,
        status: Optional[str] = None,
        source: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 10
    ) -> Tuple[List[EmailSubscription], Pagination]:
        filters = {"status": status, "source": source}

        total = await self.repo.count(filters, search)
        pagination = Pagination.build(page, page_size, total)
        rows = []
        if pagination.offset < total:
            rows = await self.repo.list(filters, search, offset=pagination.offset, limit=page_size)

        return [EmailSubscription.model_validate(row) for row in rows], pagination

    async def get_subscription(self, subscription_id: UUID) -> EmailSubscription:
        row = await self.repo.get(subscription_id)
        if row is None:
            raise NotFoundError("Subscription not found")
        return EmailSubscription.model_validate(row)

    async def update_subscription(
        self,
        subscription_id: UUID,
        update: SubscriptionUpdate
    ) -> EmailSubscription:
        row = await self.repo.update(
            subscription_id,
            status=update.status.value if update.status else None,
            preferences=update.preferences.changes() if update.preferences else None,
            tags=update.tags
        )
        if row is None:
            raise NotFoundError("Subscription not found")

        logger.info(f"Updated subscription {subscription_id}")
        return EmailSubscription.model_validate(row)

    async def delete_subscription(self, subscription_id: UUID):
        if not await self.repo.delete(subscription_id):
            raise NotFoundError("Email subscription not found")

    async def get_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        stats = await stats_service.collection_stats(self.repo, ["status", "source"], now)
        stats["active"] = await self.repo.count({"status": SubscriptionStatus.ACTIVE.value})
        stats["engagement"] = stats_service.engagement_response(
            await self.repo.engagement_summary()
        )
        return stats
