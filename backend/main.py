"""
Livedesk - Main Application Entry Point

Live chat support engine: visitor sessions, department routing,
agent hand-off and chat analytics.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.logger import logger

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    logger.info(f"Starting Livedesk in {settings.ENVIRONMENT} mode...")

    from app.infrastructure.local.database import init_db

    await init_db()

    # Start background scheduler for periodic jobs
    from app.services.background_scheduler import (
        start_background_scheduler,
        stop_background_scheduler,
    )

    await start_background_scheduler()

    yield

    # Shutdown
    logger.info("Shutting down Livedesk...")
    await stop_background_scheduler()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Livedesk",
        description="Live chat support engine",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    from app.api import admin_chat, chat, departments, knowledge_base

    app.include_router(chat.router, prefix=f"{API_PREFIX}/chat", tags=["chat"])
    # Before admin_chat so "/{chat_id}" does not shadow these paths.
    app.include_router(
        departments.router, prefix=f"{API_PREFIX}/admin/chat/departments", tags=["departments"]
    )
    app.include_router(
        knowledge_base.router, prefix=f"{API_PREFIX}/admin/chat/knowledge-base", tags=["knowledge_base"]
    )
    app.include_router(admin_chat.router, prefix=f"{API_PREFIX}/admin/chat", tags=["admin_chat"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "version": "0.1.0"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
