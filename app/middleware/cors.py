from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import Settings

def setup_cors(app: FastAPI, settings: Settings):
    """Configure CORS for the application"""
    origins = [settings.frontend_url, *settings.cors_origins]
    if not settings.is_production:
        origins += [
            "http://localhost:3000",  # React dev server
            "http://localhost:5173",  # Vite dev server
        ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(dict.fromkeys(origins)),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"]
    )
