from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # AWS Cognito
    aws_region: str
    cognito_user_pool_id: str
    cognito_client_id: str
    cognito_client_secret: str

    # Database Settings
    database_url: str
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_command_timeout: int = 60

    # App Settings
    environment: str = "development"
    log_level: str = "INFO"
    frontend_url: str = "http://localhost:5173"
    cors_origins: List[str] = []

    # Public endpoint limits
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: int = 900
    contact_duplicate_window_hours: int = 24

    class Config:
        env_file = ".env"
        extra = "ignore"  # This line allows extra env vars without errors

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

@lru_cache
def get_settings() -> Settings:
    return Settings()
