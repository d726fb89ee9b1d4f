"""
Work-Order SLA Service - Main Application
=========================================

SLA tracking for municipal public-works orders (street cave-ins, asphalt
repairs, sewer issues).

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects, SLA clock and pause ledger
- Infrastructure: Work-order store, config watcher, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from workorder_sla.config import settings
from workorder_sla.core import ApplicationException

# SLA Module
from workorder_sla.sla.application import IWorkOrderRepository, ISLAConfigProvider, SLAService
from workorder_sla.sla.domain import SLAConfig
from workorder_sla.sla.infrastructure import (
    InMemoryWorkOrderRepository, SLAConfigManager, SLAScheduler
)
from workorder_sla.sla.services import SLAEvaluator
from workorder_sla.sla.interfaces import sla_router

# Shared
from workorder_sla.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from workorder_sla.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Load SLA configuration (settings + YAML) and watch it
    3. Create the work-order repository unless one was injected
    4. Start the periodic SLA evaluation

    SHUTDOWN:
    1. Stop SLA scheduler
    2. Stop config watcher
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Work-Order SLA Service", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    config_manager = None
    if getattr(app.state, "config_provider", None) is None:
        logger.info("Loading SLA configuration")
        config_manager = SLAConfigManager(SLAConfig.from_settings(settings))
        config_manager.load(settings.sla_config_path)
        config_manager.start_watching()
        app.state.config_provider = config_manager

    if getattr(app.state, "order_repository", None) is None:
        app.state.order_repository = InMemoryWorkOrderRepository()

    sla_service = SLAService(app.state.order_repository, app.state.config_provider)
    evaluator = SLAEvaluator(sla_service)
    app.state.sla_evaluator = evaluator

    scheduler = SLAScheduler(interval_seconds=app.state.evaluation_interval)
    await scheduler.start(evaluator.evaluate)
    app.state.sla_scheduler = scheduler

    logger.info("Work-Order SLA Service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Work-Order SLA Service")

    await scheduler.stop()

    if config_manager:
        config_manager.stop_watching()

    logger.info("Work-Order SLA Service shutdown complete")


def create_app(
    order_repository: Optional[IWorkOrderRepository] = None,
    config_provider: Optional[ISLAConfigProvider] = None,
    evaluation_interval: Optional[int] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    The repository and config provider can be injected; otherwise an
    in-memory store and the YAML-backed config manager are used.
    """
    app = FastAPI(
        title="Work-Order SLA API",
        description="""
        ## SLA tracking for public-works orders

        **Endpoints:**
        - `PUT /sla/work-orders/{id}` - Push a work-order snapshot
        - `GET /sla/work-orders/{id}` - SLA status of one order
        - `POST /sla/work-orders/{id}/pause` - Waiting on the sanitation company (SLA paused)
        - `POST /sla/work-orders/{id}/resume` - Dependency released (SLA resumes)
        - `POST /sla/work-orders/{id}/complete` - Executed, with photo evidence
        - `POST /sla/evaluate` - Evaluate a posted order without storing it
        - `GET /sla/dashboard` - All orders with SLA status and summary
        - `GET /sla/alerts` - Overdue and near-due panel

        **Rules:**
        - Default SLA: 72 business hours (Saturday and Sunday do not count)
        - Dependency pauses are excluded from the clock
        - Near due from 75% of the SLA, overdue at 100%
        """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.state.order_repository = order_repository
    app.state.config_provider = config_provider
    app.state.evaluation_interval = (
        settings.sla_evaluation_interval if evaluation_interval is None else evaluation_interval
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
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    app.include_router(sla_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """
        Health check endpoint for load balancers and orchestrators.
        """
        scheduler = getattr(request.app.state, "sla_scheduler", None)
        evaluator = getattr(request.app.state, "sla_evaluator", None)
        latest = evaluator.latest if evaluator else None
        config = request.app.state.config_provider.get_config()

        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": {
                "sla_config": config.elapsed_mode,
                "sla_scheduler": "running" if scheduler and scheduler.is_running else "stopped",
                "last_evaluation": latest.evaluated_at.isoformat() if latest else None,
            }
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "Work-Order SLA Service",
            "version": settings.app_version,
            "architecture": "Clean Architecture",
            "docs": "/docs",
            "health": "/health"
        }

    return app


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "workorder_sla.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
