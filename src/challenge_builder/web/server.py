"""
FastAPI app factory for the challenge builder API.

Creates and configures the FastAPI application with:
- REST API routers
- CORS middleware
- Service initialization
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from .api import builder

logger = logging.getLogger(__name__)


def create_app(config_path: Path) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        config_path: Path to challenge-builder.toml

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle."""
        logger.info("Starting challenge builder API...")
        await builder.init_builder_service(config_path)
        logger.info("API ready")

        yield

        logger.info("Shutting down challenge builder API...")
        await builder.shutdown_builder_service()

    app = FastAPI(
        title="Challenge Builder",
        description="Plans and drafts backlog challenge revisions from collected insights",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(builder.router, prefix="/api/projects", tags=["challenge-builder"])

    @app.get("/")
    async def root():
        return {
            "message": "Challenge Builder API",
            "version": __version__,
            "docs": "/api/docs",
        }

    return app
