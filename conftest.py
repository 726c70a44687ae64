# conftest.py
"""Shared fixtures: an app wired to in-memory repositories and a fake Cognito."""
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest

from app.auth.models import UserResponse, UserRole
from app.auth.user_service import UserService
from app.config import Settings
from app.context import AppContext
from app.dependencies import (
    get_contact_service,
    get_dashboard_service,
    get_rate_limiter,
    get_subscription_service,
    get_user_service,
)
from app.errors import ConflictError, NotFoundError
from app.main import create_app
from app.models.subscription import DEFAULT_PREFERENCES, engagement_rate
from app.services.contact_service import ContactService
from app.services.dashboard_service import DashboardService
from app.services.subscription_service import SubscriptionService

ADMIN_TOKEN = "admin-token"
USER_TOKEN = "user-token"
ADMIN_HEADERS = {"Authorization": f"Bearer {ADMIN_TOKEN}"}
USER_HEADERS = {"Authorization": f"Bearer {USER_TOKEN}"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FakeCollection:
    """In-memory stand-in for CollectionRepository"""

    timestamp_column = "created_at"
    search_columns: tuple = ()

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        self.rows: List[Dict[str, Any]] = list(rows or [])
        self.now: Optional[datetime] = None

    def clock(self) -> datetime:
        return self.now or utcnow()

    def _matches(self, row, filters=None, search=None, since=None) -> bool:
        for column, value in (filters or {}).items():
            if value is not None and row.get(column) != value:
                return False
        if search:
            needle = search.lower()
            if not any(needle in str(row.get(column) or "").lower() for column in self.search_columns):
                return False
        if since is not None and row[self.timestamp_column] < since:
            return False
        return True

    def _select(self, filters=None, search=None, since=None) -> List[Dict[str, Any]]:
        matching = [row for row in self.rows if self._matches(row, filters, search, since)]
        return sorted(matching, key=lambda row: row[self.timestamp_column], reverse=True)

    def _find(self, record_id) -> Optional[Dict[str, Any]]:
        return next((row for row in self.rows if row["id"] == record_id), None)

    async def count(self, filters=None, search=None) -> int:
        return len(self._select(filters, search))

    async def count_since(self, cutoff) -> int:
        return len(self._select(since=cutoff))

    async def count_by(self, column, since=None) -> Dict[str, int]:
        counts = Counter(row[column] for row in self._select(since=since))
        return dict(sorted(counts.items(), key=lambda item: (-item[1], item[0])))

    async def daily_counts(self, since) -> List[Dict[str, Any]]:
        counts = Counter(
            row[self.timestamp_column].astimezone(timezone.utc).date()
            for row in self._select(since=since)
        )
        return [{"date": day, "count": counts[day]} for day in sorted(counts)]

    async def delete(self, record_id) -> bool:
        row = self._find(record_id)
        if row is None:
            return False
        self.rows.remove(row)
        return True


class FakeUserRepository(FakeCollection):
    def add(self, **fields) -> Dict[str, Any]:
        row = {
            "id": uuid.uuid4(),
            "cognito_sub": str(uuid.uuid4()),
            "email": "staff@acme.io",
            "display_name": "Staff Member",
            "role": "user",
            "status": "active",
            "created_at": self.clock(),
            "updated_at": self.clock(),
        }
        row.update(fields)
        self.rows.append(row)
        return row

    async def create_user(self, cognito_sub, email, display_name, role="user"):
        existing = await self.get_user_by_cognito_sub(cognito_sub)
        if existing:
            return existing
        return dict(self.add(cognito_sub=cognito_sub, email=email, display_name=display_name, role=role))

    async def get_user_by_cognito_sub(self, cognito_sub):
        row = next((row for row in self.rows if row["cognito_sub"] == cognito_sub), None)
        return dict(row) if row else None

    async def update_user_last_login(self, cognito_sub):
        row = next((row for row in self.rows if row["cognito_sub"] == cognito_sub), None)
        if row:
            row["updated_at"] = self.clock()


class FakeContactRepository(FakeCollection):
    search_columns = ("name", "email", "phone")

    def __init__(self, users: FakeUserRepository, rows=None):
        super().__init__(rows)
        self.users = users

    def add(self, **fields) -> Dict[str, Any]:
        now = fields.get("created_at") or self.clock()
        row = {
            "id": uuid.uuid4(),
            "name": "Jane Doe",
            "email": "jane@acme.io",
            "phone": "+15551234567",
            "description": "I would like a quote for a project.",
            "status": "new",
            "priority": "medium",
            "source": "website",
            "ip_address": None,
            "user_agent": None,
            "notes": [],
            "assigned_to": None,
            "follow_up_date": None,
            "created_at": now,
            "updated_at": now,
        }
        row.update(fields)
        self.rows.append(row)
        return row

    def _joined(self, row) -> Dict[str, Any]:
        joined = dict(row, assigned_name=None, assigned_email=None)
        user = self.users._find(row["assigned_to"]) if row["assigned_to"] else None
        if user:
            joined.update(assigned_name=user["display_name"], assigned_email=user["email"])
        return joined

    async def find_recent_by_email(self, email, since):
        matches = [row for row in self.rows if row["email"] == email and row["created_at"] >= since]
        return dict(matches[0]) if matches else None

    async def create(self, name, email, phone, description, source, ip_address, user_agent, notes):
        row = self.add(
            name=name, email=email, phone=phone, description=description, source=source,
            ip_address=ip_address, user_agent=user_agent, notes=list(notes)
        )
        return dict(row)

    async def list(self, filters=None, search=None, offset=0, limit=10):
        return [self._joined(row) for row in self._select(filters, search)[offset:offset + limit]]

    async def get(self, contact_id):
        row = self._find(contact_id)
        return self._joined(row) if row else None

    async def update(self, contact_id, status=None, priority=None, assigned_to=None, new_notes=None, unassign=False):
        row = self._find(contact_id)
        if row is None:
            return None
        if assigned_to is not None and self.users._find(assigned_to) is None:
            raise NotFoundError("Assigned user not found")
        row["status"] = status or row["status"]
        row["priority"] = priority or row["priority"]
        row["assigned_to"] = None if unassign else assigned_to or row["assigned_to"]
        row["notes"] = row["notes"] + list(new_notes or [])
        row["updated_at"] = self.clock()
        return self._joined(row)

    async def recent(self, limit=5):
        return [dict(row) for row in self._select()[:limit]]


class FakeSubscriptionRepository(FakeCollection):
    timestamp_column = "subscription_date"
    search_columns = ("email",)

    def add(self, **fields) -> Dict[str, Any]:
        now = fields.get("subscription_date") or self.clock()
        row = {
            "id": uuid.uuid4(),
            "email": "reader@acme.io",
            "status": "active",
            "source": "website-footer",
            "subscription_date": now,
            "unsubscription_date": None,
            "unsubscription_reason": None,
            "preferences": dict(DEFAULT_PREFERENCES),
            "metadata": {},
            "tags": [],
            "emails_sent": 0,
            "emails_opened": 0,
            "emails_clicked": 0,
            "last_email_sent": None,
            "last_email_opened": None,
            "last_email_clicked": None,
            "is_verified": True,
            "verified_at": now,
            "created_at": now,
            "updated_at": now,
        }
        row.update(fields)
        self.rows.append(row)
        return row

    def by_email(self, email) -> Optional[Dict[str, Any]]:
        return next((row for row in self.rows if row["email"] == email), None)

    async def get_by_email(self, email):
        row = self.by_email(email)
        return dict(row) if row else None

    async def get(self, subscription_id):
        row = self._find(subscription_id)
        return dict(row) if row else None

    async def create(self, email, source, preferences, metadata):
        if self.by_email(email):
            raise ConflictError("This email is already subscribed to our newsletter")
        now = self.clock()
        row = self.add(
            email=email, source=source, preferences=dict(preferences), metadata=dict(metadata),
            subscription_date=now, is_verified=True, verified_at=now
        )
        return dict(row)

    async def reactivate(self, email, source, preferences, metadata):
        row = self.by_email(email)
        if row is None or row["status"] == "active":
            return None
        row.update(
            status="active",
            subscription_date=self.clock(),
            unsubscription_date=None,
            unsubscription_reason=None,
            source=source,
            preferences={**row["preferences"], **preferences},
            metadata={**row["metadata"], **metadata},
            updated_at=self.clock(),
        )
        return dict(row)

    async def unsubscribe(self, email, reason):
        row = self.by_email(email)
        if row is None or row["status"] == "unsubscribed":
            return None
        row.update(
            status="unsubscribed",
            unsubscription_date=self.clock(),
            unsubscription_reason=reason,
            updated_at=self.clock(),
        )
        return dict(row)

    async def list(self, filters=None, search=None, offset=0, limit=10):
        return [dict(row) for row in self._select(filters, search)[offset:offset + limit]]

    async def update(self, subscription_id, status=None, preferences=None, tags=None):
        row = self._find(subscription_id)
        if row is None:
            return None
        if status == "unsubscribed":
            row["unsubscription_date"] = row["unsubscription_date"] or self.clock()
        elif status == "active":
            row["unsubscription_date"] = None
            row["unsubscription_reason"] = None
        row["status"] = status or row["status"]
        row["preferences"] = {**row["preferences"], **(preferences or {})}
        if tags is not None:
            row["tags"] = list(tags)
        row["updated_at"] = self.clock()
        return dict(row)

    async def engagement_summary(self, since=None):
        rows = self._select({"status": "active", "is_verified": True}, since=since)
        rates = [engagement_rate(row["emails_sent"], row["emails_opened"]) for row in rows]
        return {
            "total_subscribers": len(rows),
            "total_emails_sent": sum(row["emails_sent"] for row in rows),
            "total_emails_opened": sum(row["emails_opened"] for row in rows),
            "total_emails_clicked": sum(row["emails_clicked"] for row in rows),
            "avg_engagement_rate": round(sum(rates) / len(rates), 2) if rates else 0,
        }

    async def recent(self, limit=5):
        return [dict(row) for row in self._select()[:limit]]


class FakeCognito:
    """Token -> identity lookup in place of Cognito GetUser"""

    def __init__(self):
        self.tokens = {
            ADMIN_TOKEN: UserResponse(id="admin-sub", email="admin@acme.io", name="Ada Admin", role=UserRole.ADMIN),
            USER_TOKEN: UserResponse(id="user-sub", email="user@acme.io", name="Uma User", role=UserRole.USER),
        }
        self.passwords: Dict[str, str] = {}
        self.signed_out: List[str] = []

    def register_user(self, email, password, full_name):
        if email in self.passwords:
            raise ValueError("An account with this email already exists")
        self.passwords[email] = password
        sub = f"sub-{email}"
        self.tokens[f"token-{email}"] = UserResponse(id=sub, email=email, name=full_name, role=UserRole.USER)
        return {"success": True, "user_sub": sub, "email": email}

    def authenticate_user(self, email, password):
        if self.passwords.get(email) != password:
            raise ValueError("Invalid email or password")
        return {"access_token": f"token-{email}", "refresh_token": "refresh", "expires_in": 3600}

    def get_user_info(self, access_token):
        if access_token not in self.tokens:
            raise ValueError("Failed to get user information")
        return self.tokens[access_token]

    def sign_out(self, access_token):
        self.signed_out.append(access_token)


class FakeRateLimiter:
    def __init__(self):
        self.allowed = True
        self.calls: List[Dict[str, Any]] = []

    async def check_rate_limit(self, identifier, max_requests=100, window=900, endpoint="contact"):
        self.calls.append({"identifier": identifier, "endpoint": endpoint})
        return self.allowed


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        aws_region="us-east-1",
        cognito_user_pool_id="pool",
        cognito_client_id="client",
        cognito_client_secret="secret",
        database_url="postgresql://localhost/backoffice_test",
        environment="test",
    )


@pytest.fixture
def users_repo():
    return FakeUserRepository()


@pytest.fixture
def contacts_repo(users_repo):
    return FakeContactRepository(users_repo)


@pytest.fixture
def subscriptions_repo():
    return FakeSubscriptionRepository()


@pytest.fixture
def cognito():
    return FakeCognito()


@pytest.fixture
def rate_limiter():
    return FakeRateLimiter()


@pytest.fixture
def app(settings, cognito, users_repo, contacts_repo, subscriptions_repo, rate_limiter):
    application = create_app(context=AppContext(settings, cognito=cognito))
    overrides = application.dependency_overrides
    overrides[get_contact_service] = lambda: ContactService(
        contacts_repo, settings.contact_duplicate_window_hours
    )
    overrides[get_subscription_service] = lambda: SubscriptionService(subscriptions_repo)
    overrides[get_dashboard_service] = lambda: DashboardService(contacts_repo, subscriptions_repo, users_repo)
    overrides[get_user_service] = lambda: UserService(cognito, users_repo)
    overrides[get_rate_limiter] = lambda: rate_limiter
    return application


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
