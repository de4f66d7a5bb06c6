"""
Message Triage Engine - Main Application
==========================================

Turns a stream of chat messages into a ranked review queue, follow-up
actions, semantic search and cached date-range digests.

Modules:
- Triage: Ingest, enrich, rank, resolve/snooze, search
- Digest: Date-range summaries, generated once per range

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Coordinator, services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, LLM
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

# Configuration and Core
from triage_engine.config import TriageConfig, settings
from triage_engine.core import ApplicationException

# Infrastructure
from triage_engine.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)
from triage_engine.infrastructure.llm import build_llm_client

# Triage Module
from triage_engine.triage.application import EnrichmentService, TriageCoordinator
from triage_engine.triage.infrastructure import LLMClientAdapter, build_repositories

# Digest Module
from triage_engine.digest.application import SummaryCache
from triage_engine.digest.infrastructure import LLMSummarizer, SQLAlchemySummaryRepository

# Module Routers
from triage_engine.triage.interfaces import triage_router
from triage_engine.digest.interfaces import digest_router

# Logging and middleware
from triage_engine.shared.infrastructure.logging import setup_logging, get_logger
from triage_engine.shared.api.middleware import (
    CorrelationIDMiddleware,
    MetricsMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)

logger = get_logger(__name__)


def build_coordinator(llm_client) -> TriageCoordinator:
    """Wire the coordinator and its collaborators from settings."""
    config = TriageConfig.from_settings(settings)

    enrichment = EnrichmentService(
        LLMClientAdapter(llm_client),
        embedding_dimension=config.embedding_dimension,
        classify_model=settings.classify_model,
        embedding_model=settings.embedding_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.classify_max_tokens
    )
    summary_cache = SummaryCache(
        get_session_context,
        SQLAlchemySummaryRepository,
        message_limit=config.summary_message_limit
    )
    summarizer = LLMSummarizer(
        llm_client,
        model=settings.summary_model,
        snippet_chars=config.summary_snippet_chars,
        temperature=settings.llm_temperature,
        max_tokens=settings.summary_max_tokens
    )
    return TriageCoordinator(
        config,
        get_session_context,
        build_repositories,
        enrichment,
        summary_cache=summary_cache,
        summarizer=summarizer
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Initialize LLM client
    4. Build the triage coordinator

    SHUTDOWN:
    1. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Triage Engine", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Create tables (for development - use migrations in production)
    logger.info("Creating database tables")
    try:
        await create_tables()
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    logger.info("Initializing LLM client", extra={"mock": settings.mock_llm})
    llm_client = build_llm_client(settings.openai_api_key)

    app.state.settings = settings
    app.state.llm_client = llm_client
    app.state.coordinator = build_coordinator(llm_client)

    logger.info("Triage Engine started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Triage Engine")
    await close_database()
    logger.info("Triage Engine shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Message Triage Engine API",
    description="""
    ## Message Triage for a busy chat inbox

    ### Triage Module

    **Endpoints:**
    - `POST /triage/messages` - Ingest a message (idempotent on `external_ref`)
    - `GET /triage/review` - Ranked review queue for the last N days
    - `POST /triage/followups/{id}/resolve` - Mark a follow-up done
    - `POST /triage/followups/{id}/snooze` - Snooze a follow-up
    - `GET /triage/search` - Semantic search over stored embeddings

    **Priority score:**
    `3·question + 2·followup + 1.5·urgency + 2·unreplied + e^(-age_days)`

    ### Digest Module

    **Endpoints:**
    - `GET /digest/summary` - Markdown digest of the last N days, cached per date range
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(triage_router)
app.include_router(digest_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "coordinator": "ready",
                        "llm_client": "openai"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """Health check endpoint for load balancers and orchestrators."""
    coordinator = getattr(request.app.state, "coordinator", None)
    llm_client = getattr(request.app.state, "llm_client", None)
    checks = {
        "coordinator": "ready" if coordinator else "not_initialized",
        "llm_client": "mock" if settings.mock_llm else ("openai" if llm_client else "not_configured"),
    }
    return {
        "status": "healthy" if coordinator else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Message Triage Engine",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "triage": {
                "prefix": "/triage",
                "endpoints": [
                    "POST /triage/messages - Ingest message",
                    "GET /triage/review - Ranked review queue",
                    "POST /triage/followups/{id}/resolve - Resolve follow-up",
                    "POST /triage/followups/{id}/snooze - Snooze follow-up",
                    "GET /triage/search - Semantic search"
                ]
            },
            "digest": {
                "prefix": "/digest",
                "endpoints": [
                    "GET /digest/summary - Date-range digest"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "triage_engine.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
