# src/knowledge_hub/main.py
"""Main entry point for the Knowledge Hub API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from knowledge_hub.api.v1 import (
    answers_router,
    comments_router,
    feed_router,
    follows_router,
    posts_router,
    suggestions_router,
    users_router,
    votes_router,
)
from knowledge_hub.core.errors import KnowledgeHubError, RateLimited
from knowledge_hub.core.settings import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description="Community scoring and ranking core of the Knowledge Hub",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(posts_router, prefix="/api/v1")
app.include_router(suggestions_router, prefix="/api/v1")
app.include_router(feed_router, prefix="/api/v1")
app.include_router(votes_router, prefix="/api/v1")
app.include_router(comments_router, prefix="/api/v1")
app.include_router(answers_router, prefix="/api/v1")
app.include_router(follows_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")


@app.exception_handler(KnowledgeHubError)
async def knowledge_hub_error_handler(request: Request, exc: KnowledgeHubError) -> JSONResponse:
    """Translate service errors into JSON responses with their status code."""
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimited):
        headers["Retry-After"] = str(exc.retry_after)
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=headers or None,
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("knowledge_hub.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
