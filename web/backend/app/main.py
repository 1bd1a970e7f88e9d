"""FastAPI application for the feedguard moderation service.

Provides REST API endpoints wrapping the feedguard package for:
- Content analysis and publish decisions
- The human review queue
- Audit history, statistics and export
- Detection settings
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Ensure the feedguard package is importable by adding the project root to sys.path.
_project_root = str(Path(__file__).resolve().parents[3])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from feedguard import __version__
from feedguard.config import configure_logging
from feedguard.errors import StoreError, TransientStoreError
from web.backend.app.routers import moderation

configure_logging()
log = logging.getLogger("feedguard.web")

app = FastAPI(
    title="feedguard API",
    description=(
        "REST API for pre-publication content moderation. "
        "Provides endpoints for analysis, publish decisions, the review queue, "
        "audit history and settings."
    ),
    version=__version__,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(moderation.router)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    """Persistence failures that escaped a route: 503 if retryable, else 500."""
    log.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    if isinstance(exc, TransientStoreError):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Moderation store unavailable"},
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Moderation store error"},
    )


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "feedguard API",
        "version": __version__,
        "description": "Content moderation REST API",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    return {"status": "healthy"}
