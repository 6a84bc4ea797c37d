"""
FastAPI application entry point for the backup scheduler.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backup_scheduler.config import get_settings
from backup_scheduler.routes import router

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Backup Scheduler (FastAPI)", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=CORS_ALLOW_HEADERS,
    )
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
