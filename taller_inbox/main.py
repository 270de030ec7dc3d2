"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taller_inbox.api.middleware import RequestContextMiddleware
from taller_inbox.api.routes import api_router
from taller_inbox.core.errors import InboxError
from taller_inbox.infrastructure.redis import redis_client
from taller_inbox.logging_config import setup_logging
from taller_inbox.settings import settings
from taller_inbox.workers import reconciliation_worker

# Setup logging
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    await redis_client.connect()
    yield
    # Shutdown
    await redis_client.disconnect()


# Create FastAPI app
app = FastAPI(
    title="Taller Inbox API",
    description="WhatsApp ingestion, conversation and lead pipeline for workshops",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestContextMiddleware)


@app.exception_handler(InboxError)
async def inbox_error_handler(request: Request, exc: InboxError) -> JSONResponse:
    """Render core errors as ``{"success": false, "message": ...}``."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}", extra=exc.context)
    else:
        logger.warning(f"{type(exc).__name__}: {exc.message}", extra=exc.context)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


# Include API routes
app.include_router(api_router, prefix=settings.api_v1_prefix)

# Include worker routes (operator batch entry points)
app.include_router(reconciliation_worker.router, prefix="/workers", tags=["workers"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
