# app/routes/email.py
from fastapi import APIRouter, Depends, Query, Request, Response, status
from typing import Optional
from uuid import UUID
from app.auth.dependencies import require_admin
from app.auth.models import UserResponse
from app.dependencies import RateLimit, get_subscription_service
from app.errors import AppError, InternalError
from app.models.subscription import (
    SubscribeRequest,
    SubscriptionSource,
    SubscriptionStatus,
    SubscriptionUpdate,
    UnsubscribeRequest,
)
from app.services.subscription_service import SubscriptionService
from app.utils.client import request_metadata
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/email", tags=["Email Subscriptions"])

@router.post(
    "/subscribe",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("email-subscribe"))]
)
async def subscribe_email(
    request: SubscribeRequest,
    req: Request,
    response: Response,
    subscription_service: SubscriptionService = Depends(get_subscription_service)
):
    """Subscribe to the email list, reactivating a previous subscription"""
    try:
        result = await subscription_service.subscribe(
            email=request.email,
            source=request.source.value,
            preferences=request.preferences.changes(),
            metadata=request_metadata(req)
        )
        subscription = result.subscription

        if result.reactivated:
            response.status_code = status.HTTP_200_OK
            message = "Welcome back! Your email subscription has been reactivated."
        else:
            message = "Thank you for subscribing! You will receive our latest updates and offers."

        return {
            "success": True,
            "message": message,
            "data": {
                "id": str(subscription.id),
                "email": subscription.email,
                "status": subscription.status.value,
                "subscriptionDate": subscription.subscription_date.isoformat()
            }
        }

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Email subscription error for {request.email}: {e}")
        raise InternalError("Failed to subscribe. Please try again later.") from e

@router.post(
    "/unsubscribe",
    dependencies=[Depends(RateLimit("email-unsubscribe"))]
)
async def unsubscribe_email(
    request: UnsubscribeRequest,
    subscription_service: SubscriptionService = Depends(get_subscription_service)
):
    try:
        await subscription_service.unsubscribe(request.email, request.reason)
        return {
            "success": True,
            "message": "You have been successfully unsubscribed from our mailing list"
        }
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Email unsubscription error for {request.email}: {e}")
        raise InternalError("Failed to unsubscribe. Please try again later.") from e

@router.get("/subscriptions")
async def get_subscriptions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[SubscriptionStatus] = None,
    source: Optional[SubscriptionSource] = None,
    search: Optional[str] = Query(None, max_length=100),
    admin: UserResponse = Depends(require_admin),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
):
    """Paginated subscriptions, most recent subscription date first"""
    try:
        subscriptions, pagination = await subscription_service.list_subscriptions(
            status=status.value if status else None,
            source=source.value if source else None,
            search=search or None,
            page=page,
            page_size=limit
        )

        return {
            "success": True,
            "data": [subscription.to_response() for subscription in subscriptions],
            "pagination": pagination.to_response()
        }

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Get subscriptions error: {e}")
        raise InternalError("Failed to fetch subscriptions") from e

@router.get("/stats")
async def get_email_stats(
    admin: UserResponse = Depends(require_admin),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
):
    try:
        return {"success": True, "data": await subscription_service.get_stats()}
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Get email stats error: {e}")
        raise InternalError("Failed to fetch email statistics") from e

@router.get("/subscription/{subscription_id}")
async def get_subscription(
    subscription_id: UUID,
    admin: UserResponse = Depends(require_admin),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
):
    try:
        subscription = await subscription_service.get_subscription(subscription_id)
        return {"success": True, "data": subscription.to_response()}
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Get subscription error: {e}")
        raise InternalError("Failed to fetch subscription") from e

@router.put("/subscription/{subscription_id}")
async def update_subscription(
    subscription_id: UUID,
    update: SubscriptionUpdate,
    admin: UserResponse = Depends(require_admin),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
):
    try:
        subscription = await subscription_service.update_subscription(subscription_id, update)
        return {
            "success": True,
            "message": "Subscription updated successfully",
            "data": subscription.to_response()
        }
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Update subscription error: {e}")
        raise InternalError("Failed to update subscription") from e

@router.delete("/subscription/{subscription_id}")
async def delete_subscription(
    subscription_id: UUID,
    admin: UserResponse = Depends(require_admin),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
):
    try:
        await subscription_service.delete_subscription(subscription_id)
        return {"success": True, "message": "Email subscription deleted successfully"}
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Delete email subscription error: {e}")
        raise InternalError("Failed to delete email subscription") from e
