# app/database/__init__.py
from .connection import DatabaseConnection
from .contact_repository import ContactRepository
from .subscription_repository import SubscriptionRepository
from .user_repository import UserRepository

__all__ = ["DatabaseConnection", "ContactRepository", "SubscriptionRepository", "UserRepository"]
