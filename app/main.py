# app/main.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
from app.config import Settings, get_settings
from app.context import AppContext
from app.errors import AppError, InternalError
from app.middleware.cors import setup_cors

import logging

logger = logging.getLogger(__name__)

def _error_body(exc: AppError, settings: Settings) -> dict:
    body = {"success": False, "message": exc.message}
    if exc.errors:
        body["errors"] = exc.errors
    if isinstance(exc, InternalError) and not settings.is_production and exc.__cause__ is not None:
        body["error"] = str(exc.__cause__)
    return body

def _field_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(location),
            "message": error.get("msg", "Invalid value")
        })
    return errors

def register_exception_handlers(app: FastAPI, settings: Settings):
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.__cause__ or exc}")
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc, settings))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Unmatched paths and methods raised by the router
        message = "Route not found" if exc.status_code == 404 else exc.detail
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": message},
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Validation failed",
                "errors": _field_errors(exc)
            }
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        content = {"success": False, "message": "Something went wrong!"}
        if not settings.is_production:
            content["error"] = str(exc)
        return JSONResponse(status_code=500, content=content)

def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    if context is None:
        context = AppContext(settings or get_settings())
    settings = context.settings

    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        # Startup
        logger.info("Starting back-office API...")
        try:
            await context.startup()
        except Exception as e:
            if settings.environment == "development":
                logger.warning(f"Database connection failed (development mode): {e}")
            else:
                logger.error(f"Failed to initialize database: {e}")
                raise

        yield

        # Shutdown
        logger.info("Shutting down back-office API...")
        try:
            await context.shutdown()
        except Exception as e:
            logger.warning(f"Error closing database connections: {e}")

    app = FastAPI(
        title="Back-office API",
        description="Contact requests, email subscriptions and admin dashboard",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.context = context

    setup_cors(app, settings)
    register_exception_handlers(app, settings)

    from app.auth.routes import router as auth_router
    from app.routes.contacts import router as contact_router
    from app.routes.email import router as email_router
    from app.routes.dashboard import router as dashboard_router

    app.include_router(auth_router)
    app.include_router(contact_router)
    app.include_router(email_router)
    app.include_router(dashboard_router)

    @app.get("/api/health")
    async def health_check():
        """Health check including database"""
        db_healthy = await context.database.is_healthy()
        return {
            "status": "OK" if db_healthy else "degraded",
            "environment": settings.environment,
            "database_healthy": db_healthy,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    return app

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:create_app", factory=True, host="0.0.0.0", port=8000)
