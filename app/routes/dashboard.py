# app/routes/dashboard.py
from fastapi import APIRouter, Depends, Query
from app.auth.dependencies import require_admin
from app.auth.models import UserResponse
from app.dependencies import get_dashboard_service
from app.errors import AppError, InternalError
from app.services.dashboard_service import DashboardService
from app.services.stats_service import DEFAULT_PERIOD
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])

@router.get("/overview")
async def get_overview(
    period: str = Query(DEFAULT_PERIOD, description="Growth window: 7d, 30d, 90d or 1y"),
    admin: UserResponse = Depends(require_admin),
    dashboard_service: DashboardService = Depends(get_dashboard_service)
):
    """Counts across contacts, subscriptions and users plus recent activity"""
    try:
        return {"success": True, "data": await dashboard_service.overview(period)}
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Dashboard overview error: {e}")
        raise InternalError("Failed to fetch dashboard data") from e

@router.get("/analytics")
async def get_analytics(
    period: str = Query(DEFAULT_PERIOD, description="Analysis window: 7d, 30d, 90d or 1y"),
    admin: UserResponse = Depends(require_admin),
    dashboard_service: DashboardService = Depends(get_dashboard_service)
):
    try:
        return {"success": True, "data": await dashboard_service.analytics(period)}
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Dashboard analytics error: {e}")
        raise InternalError("Failed to fetch analytics data") from e
