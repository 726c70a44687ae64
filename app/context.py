# app/context.py
from typing import Optional
from app.auth.cognito import CognitoClient
from app.config import Settings
from app.database.connection import DatabaseConnection
import logging

logger = logging.getLogger(__name__)

class AppContext:
    """Process-wide collaborators, built once and shared by every request"""

    def __init__(
        self,
        settings: Settings,
        database: Optional[DatabaseConnection] = None,
        cognito: Optional[CognitoClient] = None
    ):
        self.settings = settings
        self.database = database or DatabaseConnection(settings)
        self.cognito = cognito or CognitoClient(settings)

    async def startup(self):
        await self.database.get_pool()
        logger.info("Database connection pool initialized")

    async def shutdown(self):
        await self.database.close_pool()
        logger.info("Database connections closed")
