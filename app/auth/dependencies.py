# app/auth/dependencies.py
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool
from typing import Optional
from app.auth.cognito import CognitoClient
from app.auth.models import UserResponse, UserRole
from app.dependencies import get_cognito_client
from app.errors import AuthError, ForbiddenError
import logging

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    cognito: CognitoClient = Depends(get_cognito_client)
) -> UserResponse:
    """Resolve the bearer access token to a Cognito user - REQUIRED authentication"""
    if not credentials:
        raise AuthError("Not authenticated")

    try:
        return await run_in_threadpool(cognito.get_user_info, credentials.credentials)
    except ValueError:
        logger.warning("Rejected invalid access token")
        raise AuthError("Invalid authentication credentials")

async def require_admin(
    user: UserResponse = Depends(get_current_user)
) -> UserResponse:
    """Admin-only routes"""
    if user.role != UserRole.ADMIN:
        logger.warning(f"Non-admin user {user.id} denied access")
        raise ForbiddenError("Admin access required")
    return user
