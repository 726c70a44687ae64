# app/auth/user_service.py
from typing import Dict, Any
from starlette.concurrency import run_in_threadpool
from app.auth.cognito import CognitoClient
from app.auth.models import LoginResponse, UserResponse, UserRole
from app.database.user_repository import UserRepository
import logging

logger = logging.getLogger(__name__)

class UserService:
    """Service for managing users across Cognito and Database"""

    def __init__(self, cognito: CognitoClient, users: UserRepository):
        self.cognito = cognito
        self.users = users

    async def register_user(
        self,
        email: str,
        password: str,
        full_name: str
    ) -> Dict[str, Any]:
        """Register user in both Cognito and Database"""
        # Step 1: Register in Cognito first
        cognito_response = await run_in_threadpool(
            self.cognito.register_user, email, password, full_name
        )

        # Step 2: Create user in database
        db_user = await self.users.create_user(
            cognito_sub=cognito_response['user_sub'],
            email=email,
            display_name=full_name,
            role=UserRole.USER.value
        )

        logger.info(f"User registered successfully: {email}")
        return db_user

    async def authenticate_user(self, email: str, password: str) -> LoginResponse:
        """Authenticate user and sync with database"""
        # Step 1: Authenticate with Cognito
        auth_response = await run_in_threadpool(self.cognito.authenticate_user, email, password)

        # Step 2: Get user info from Cognito
        user_info = await run_in_threadpool(self.cognito.get_user_info, auth_response['access_token'])

        # Step 3: Sync with database
        db_user = await self.users.get_user_by_cognito_sub(user_info.id)
        if not db_user:
            logger.info(f"Creating missing database user for: {email}")
            db_user = await self.users.create_user(
                cognito_sub=user_info.id,
                email=user_info.email,
                display_name=user_info.name,
                role=user_info.role.value
            )
        else:
            await self.users.update_user_last_login(user_info.id)

        user = UserResponse(
            id=user_info.id,
            email=user_info.email,
            name=db_user['display_name'] or user_info.name,
            role=UserRole(db_user['role']),
            permissions=user_info.permissions
        )

        return LoginResponse(
            user=user,
            access_token=auth_response['access_token'],
            refresh_token=auth_response.get('refresh_token'),
            expires_in=auth_response['expires_in']
        )
