"""This file contains the main application entry point."""

from contextlib import asynccontextmanager

from fastapi import (
    FastAPI,
    Request,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from prometheus_client import make_asgi_app
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.langgraph.hitl import approval_gate
from app.core.limiter import limiter
from app.core.logging import logger
from app.services.llm import llm_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    logger.info(
        "application_startup",
        project_name=settings.PROJECT_NAME,
        version=settings.VERSION,
        api_prefix=settings.API_V1_STR,
        offline_simulation=not llm_service.available,
    )
    logger.debug("application_settings", **settings.as_dict())
    yield
    logger.info("application_shutdown", open_checkpoints=len(approval_gate))


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    description="Multi-agent travel approval workflow with human-in-the-loop checkpoints",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Set up rate limiter exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Set up CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus scrape endpoint
app.mount("/metrics", make_asgi_app())

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/", response_class=PlainTextResponse)
@limiter.limit(settings.RATE_LIMIT_ENDPOINTS["health"][0])
async def root(request: Request):
    """Root endpoint returning a short banner."""
    logger.info("root_endpoint_called")
    return f"{settings.PROJECT_NAME} API is running. Stream a workflow at {settings.API_V1_STR}/agent/chat/stream"

