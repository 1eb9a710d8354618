"""
FastAPI application entry point
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gradelens.api.routes import submissions
from gradelens.core.config import settings
from gradelens.core.exceptions import EmbeddingGenerationError
from gradelens.db.database import close_db, init_db
from gradelens.services import EmbeddingService, SubmissionAIProcessor


def configure_logging(level: str = settings.log_level) -> None:
    """Route structlog through stdlib logging and render JSON lines"""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Starting GradeLens application", version=settings.version)
    await init_db()

    if settings.embedding.preload:
        try:
            await app.state.embedding_service.ensure_model()
        except EmbeddingGenerationError as e:
            # Requests retry the load on first use
            logger.warning("Embedding model preload failed", error=str(e))

    yield

    logger.info("Shutting down GradeLens application")
    await close_db()


def create_app(embedding_service: EmbeddingService | None = None) -> FastAPI:
    """
    Build the API application

    Args:
        embedding_service: Shared embedding service; a default one is created
            when omitted. The model itself loads on first use.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Plagiarism detection and heuristic AI grading for course submissions",
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
        openapi_url=f"{settings.api_prefix}/openapi.json" if settings.debug else None,
        docs_url=f"{settings.api_prefix}/docs" if settings.debug else None,
    )

    app.state.embedding_service = embedding_service or EmbeddingService()
    app.state.processor = SubmissionAIProcessor(app.state.embedding_service)

    if settings.debug:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(
        submissions.router,
        prefix=f"{settings.api_prefix}/submissions",
        tags=["submissions"]
    )

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        service: EmbeddingService = app.state.embedding_service
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.version,
            "embedding_model": service.model_name,
            "embedding_model_loaded": service.is_loaded
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "gradelens.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=None,  # Use structlog configuration
    )
