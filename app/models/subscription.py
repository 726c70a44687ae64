# app/models/subscription.py
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool, computed_field, field_validator
from app.models.common import CamelModel


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    UNSUBSCRIBED = "unsubscribed"
    BOUNCED = "bounced"
    COMPLAINED = "complained"


class SubscriptionSource(str, Enum):
    WEBSITE_FOOTER = "website-footer"
    WEBSITE_POPUP = "website-popup"
    MANUAL = "manual"
    IMPORT = "import"


DEFAULT_PREFERENCES: Dict[str, bool] = {
    "newsletters": True,
    "promotions": True,
    "updates": True,
    "events": True,
}


def _percent(part: int, whole: int) -> int:
    """round(100 * part / whole) with halves rounded up; 0 when whole is 0"""
    if not whole:
        return 0
    return (200 * part + whole) // (2 * whole)


def engagement_rate(emails_sent: int, emails_opened: int) -> int:
    return _percent(emails_opened, emails_sent)


def click_rate(emails_opened: int, emails_clicked: int) -> int:
    return _percent(emails_clicked, emails_opened)


def subscription_duration(
    subscription_date: datetime,
    unsubscription_date: Optional[datetime] = None,
    now: Optional[datetime] = None
) -> int:
    end = unsubscription_date or now or datetime.now(timezone.utc)
    return (end - subscription_date).days


class Preferences(CamelModel):
    newsletters: bool = True
    promotions: bool = True
    updates: bool = True
    events: bool = True


class PreferencesUpdate(BaseModel):
    """Partial preferences; only the keys that were sent are merged"""

    newsletters: Optional[StrictBool] = None
    promotions: Optional[StrictBool] = None
    updates: Optional[StrictBool] = None
    events: Optional[StrictBool] = None

    def changes(self) -> Dict[str, bool]:
        return self.model_dump(exclude_none=True)


class SubscriptionMetadata(CamelModel):
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None


class SubscribeRequest(BaseModel):
    email: EmailStr
    source: SubscriptionSource = SubscriptionSource.WEBSITE_FOOTER
    preferences: PreferencesUpdate = PreferencesUpdate()

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class UnsubscribeRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    reason: Optional[str] = Field(None, max_length=200)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class SubscriptionUpdate(BaseModel):
    status: Optional[SubscriptionStatus] = None
    preferences: Optional[PreferencesUpdate] = None
    tags: Optional[List[str]] = None

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        tags = [tag.strip() for tag in value]
        if any(not 1 <= len(tag) <= 50 for tag in tags):
            raise ValueError("Each tag must be between 1 and 50 characters")
        return tags


class EmailSubscription(CamelModel):
    id: UUID
    email: str
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    source: SubscriptionSource = SubscriptionSource.WEBSITE_FOOTER
    subscription_date: datetime
    unsubscription_date: Optional[datetime] = None
    unsubscription_reason: Optional[str] = None
    preferences: Preferences = Preferences()
    metadata: SubscriptionMetadata = SubscriptionMetadata()
    tags: List[str] = []
    emails_sent: int = 0
    emails_opened: int = 0
    emails_clicked: int = 0
    last_email_sent: Optional[datetime] = None
    last_email_opened: Optional[datetime] = None
    last_email_clicked: Optional[datetime] = None
    is_verified: bool = False
    verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field(alias="engagementRate")
    @property
    def engagement_rate(self) -> int:
        return engagement_rate(self.emails_sent, self.emails_opened)

    @computed_field(alias="clickRate")
    @property
    def click_rate(self) -> int:
        return click_rate(self.emails_opened, self.emails_clicked)

    @computed_field(alias="subscriptionDuration")
    @property
    def subscription_duration(self) -> int:
        return subscription_duration(self.subscription_date, self.unsubscription_date)
