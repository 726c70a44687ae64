# app/database/user_repository.py
import asyncpg
from typing import Optional, Dict, Any
from app.auth.models import UserRole
from app.database.base_repository import CollectionRepository
import logging

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, cognito_sub, email, display_name, role, status, created_at, updated_at"

class UserRepository(CollectionRepository):
    table = "users"
    timestamp_column = "created_at"
    filter_columns = frozenset({"status", "role"})
    groupable_columns = frozenset({"status", "role"})

    async def create_user(
        self,
        cognito_sub: str,
        email: str,
        display_name: str,
        role: str = UserRole.USER
    ) -> Dict[str, Any]:
        """Create a new user in the database"""
        try:
            query = f"""
                INSERT INTO users (cognito_sub, email, display_name, role)
                VALUES ($1, $2, $3, $4)
                RETURNING {USER_COLUMNS}
            """

            result = await self.conn.fetchrow(query, cognito_sub, email, display_name, role)

            logger.info(f"Created user in database: {email} (cognito_sub: {cognito_sub})")
            return dict(result)

        except asyncpg.UniqueViolationError:
            logger.warning(f"User already exists: {email}")
            # Return existing user instead of failing
            return await self.get_user_by_cognito_sub(cognito_sub)

    async def get_user_by_cognito_sub(self, cognito_sub: str) -> Optional[Dict[str, Any]]:
        """Get user by Cognito sub ID"""
        result = await self.conn.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE cognito_sub = $1",
            cognito_sub
        )
        return dict(result) if result else None

    async def update_user_last_login(self, cognito_sub: str):
        """Update user's last login timestamp"""
        await self.conn.execute("""
            UPDATE users
            SET updated_at = NOW()
            WHERE cognito_sub = $1
        """, cognito_sub)
        logger.info(f"Updated last login for user: {cognito_sub}")
