# app/utils/client.py
from typing import Optional
from fastapi import Request
from app.models.subscription import SubscriptionMetadata

def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None

def user_agent(request: Request) -> Optional[str]:
    return request.headers.get("user-agent")

def request_metadata(request: Request) -> SubscriptionMetadata:
    """Client details recorded alongside a subscription"""
    return SubscriptionMetadata(
        ip_address=client_ip(request),
        user_agent=user_agent(request),
        referrer=request.headers.get("referer")
    )
