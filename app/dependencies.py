# app/dependencies.py
"""FastAPI dependency providers.

Everything is resolved from the ``AppContext`` stored on ``app.state`` so no
module holds a connection pool or client of its own. Tests override the
service providers to run without a database.
"""
from typing import AsyncIterator
import asyncpg
from fastapi import Depends, Request
from app.auth.cognito import CognitoClient
from app.auth.user_service import UserService
from app.config import Settings
from app.context import AppContext
from app.database.contact_repository import ContactRepository
from app.database.subscription_repository import SubscriptionRepository
from app.database.user_repository import UserRepository
from app.errors import RateLimitError
from app.services.contact_service import ContactService
from app.services.dashboard_service import DashboardService
from app.services.subscription_service import SubscriptionService
from app.utils.client import client_ip
from app.utils.rate_limiting import RateLimiter


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_app_settings(context: AppContext = Depends(get_context)) -> Settings:
    return context.settings


def get_cognito_client(context: AppContext = Depends(get_context)) -> CognitoClient:
    return context.cognito


async def get_db_connection(context: AppContext = Depends(get_context)) -> AsyncIterator[asyncpg.Connection]:
    async with context.database.acquire() as connection:
        yield connection


def get_contact_service(
    connection: asyncpg.Connection = Depends(get_db_connection),
    settings: Settings = Depends(get_app_settings)
) -> ContactService:
    return ContactService(
        ContactRepository(connection),
        duplicate_window_hours=settings.contact_duplicate_window_hours
    )


def get_subscription_service(
    connection: asyncpg.Connection = Depends(get_db_connection)
) -> SubscriptionService:
    return SubscriptionService(SubscriptionRepository(connection))


def get_dashboard_service(
    connection: asyncpg.Connection = Depends(get_db_connection)
) -> DashboardService:
    return DashboardService(
        contacts=ContactRepository(connection),
        subscriptions=SubscriptionRepository(connection),
        users=UserRepository(connection)
    )


def get_user_service(
    connection: asyncpg.Connection = Depends(get_db_connection),
    cognito: CognitoClient = Depends(get_cognito_client)
) -> UserService:
    return UserService(cognito, UserRepository(connection))


def get_rate_limiter(
    connection: asyncpg.Connection = Depends(get_db_connection)
) -> RateLimiter:
    return RateLimiter(connection)


class RateLimit:
    """Per-IP request cap for a public endpoint"""

    def __init__(self, endpoint: str):
        self.endpoint = endpoint

    async def __call__(
        self,
        request: Request,
        limiter: RateLimiter = Depends(get_rate_limiter),
        settings: Settings = Depends(get_app_settings)
    ):
        allowed = await limiter.check_rate_limit(
            identifier=client_ip(request) or "unknown",
            max_requests=settings.rate_limit_max_requests,
            window=settings.rate_limit_window_seconds,
            endpoint=self.endpoint
        )
        if not allowed:
            raise RateLimitError()
