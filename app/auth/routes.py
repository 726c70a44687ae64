# app/auth/routes.py
from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from starlette.concurrency import run_in_threadpool
from typing import Optional
from app.auth.cognito import CognitoClient
from app.auth.dependencies import bearer_scheme, get_current_user
from app.auth.models import LoginRequest, RegisterRequest, UserResponse
from app.auth.user_service import UserService
from app.dependencies import get_cognito_client, get_user_service
from app.errors import AppError, AuthError, InternalError, ValidationError
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["Authentication"])

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    user_service: UserService = Depends(get_user_service)
):
    """Register a new user and log them in"""
    logger.info(f"Registration request for email: {request.email}")

    try:
        await user_service.register_user(
            email=request.email,
            password=request.password,
            full_name=request.full_name
        )

        # Auto-login after registration
        login = await user_service.authenticate_user(
            email=request.email,
            password=request.password
        )

        logger.info(f"Registration and auto-login successful for: {request.email}")
        return {
            "success": True,
            "message": "Registration successful",
            "data": login.to_response()
        }

    except ValueError as e:
        logger.warning(f"Registration validation error: {str(e)}")
        raise ValidationError(str(e))
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Registration failed: {str(e)}")
        raise InternalError("Registration failed") from e

@router.post("/login")
async def login(
    request: LoginRequest,
    user_service: UserService = Depends(get_user_service)
):
    """Login with email and password; returns bearer tokens"""
    logger.info(f"Login request for email: {request.email}")

    try:
        login = await user_service.authenticate_user(
            email=request.email,
            password=request.password
        )

        logger.info(f"Login successful for: {request.email}")
        return {
            "success": True,
            "message": "Login successful",
            "data": login.to_response()
        }

    except ValueError as e:
        logger.warning(f"Login validation error: {str(e)}")
        raise AuthError(str(e))
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Login failed: {str(e)}")
        raise InternalError("Login failed") from e

@router.get("/me")
async def get_current_user_info(
    user: UserResponse = Depends(get_current_user)
):
    """Get current user information"""
    return {"success": True, "data": user.to_response()}

@router.post("/logout")
async def logout(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    cognito: CognitoClient = Depends(get_cognito_client)
):
    """Logout user"""
    if credentials:
        await run_in_threadpool(cognito.sign_out, credentials.credentials)

    return {"success": True, "message": "Logged out successfully"}
