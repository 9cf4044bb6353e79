"""
Main Application - FastAPI app factory and lifespan management
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from ..db import DatabaseManager, EvaluationRepository, PartnerKeyRepository
from ..services.ai import create_ai_provider
from ..services.mail import SmtpMailer
from ..services.pipeline import (
    DocumentValidator,
    EvaluationPipeline,
    EvaluationStore,
    Mailer,
    ReportRenderer,
    ScoringEngine,
)
from ..services.report import PillowReportRenderer
from ..services.scoring import NarrativeWriter, RuleBasedScoringEngine
from ..services.validation import DefaultDocumentValidator
from .config import AppConfig, config as default_config
from .limiter import limiter
from .routers import evaluate, health, partner, reports
from .services.job_executor import JobExecutorService
from .services.job_service import JobRegistry


logger = logging.getLogger(__name__)


@dataclass
class Collaborators:
    """
    Optional overrides for the pipeline collaborators.

    Anything left as None is built from the application config.
    """

    validator: Optional[DocumentValidator] = None
    scorer: Optional[ScoringEngine] = None
    store: Optional[EvaluationStore] = None
    renderer: Optional[ReportRenderer] = None
    mailer: Optional[Mailer] = None


def _build_scorer(cfg: AppConfig) -> ScoringEngine:
    provider = create_ai_provider(
        cfg.ai_provider,
        base_url=cfg.ai_base_url,
        api_key=cfg.ai_api_key,
        model=cfg.ai_model,
        timeout=cfg.ai_timeout,
    )
    logger.info("[AI Provider] ai_provider=%s, enabled=%s", cfg.ai_provider, provider is not None)
    return RuleBasedScoringEngine(
        NarrativeWriter(
            provider,
            model=cfg.ai_model,
            temperature=cfg.ai_temperature,
            max_tokens=cfg.ai_max_tokens,
        )
    )


def _make_lifespan(cfg: AppConfig, overrides: Collaborators):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle management"""
        logger.info("Starting Visa Evaluation Web Server...")
        logger.info("Database path: %s", cfg.db_path)

        db = DatabaseManager(cfg.db_path)
        try:
            await db.init()
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.exception("Failed to initialize database")
            raise RuntimeError(f"Database initialization failed: {e}") from e

        evaluations = EvaluationRepository(db)
        store = overrides.store or evaluations
        renderer = overrides.renderer or PillowReportRenderer()
        mailer = overrides.mailer or SmtpMailer(cfg.smtp_settings())
        if overrides.mailer is None and not cfg.email_host:
            logger.warning("EMAIL_HOST not set; evaluation emails will not be sent")

        pipeline = EvaluationPipeline(
            validator=overrides.validator or DefaultDocumentValidator(cfg.max_upload_files),
            scorer=overrides.scorer or _build_scorer(cfg),
            store=store,
            renderer=renderer,
            mailer=mailer,
            stage_timeout_s=cfg.stage_timeout_s,
        )
        registry = JobRegistry(max_lifetime_s=cfg.job_max_lifetime_s)
        executor = JobExecutorService(registry, pipeline, retention_s=cfg.job_retention_s)

        app.state.db = db
        app.state.store = store
        app.state.partner_keys = PartnerKeyRepository(db, default_rate_limit=cfg.partner_rate_limit)
        app.state.renderer = renderer
        app.state.mailer = mailer
        app.state.pipeline = pipeline
        app.state.registry = registry
        app.state.executor = executor

        yield

        logger.info("Shutting down...")
        await executor.shutdown()
        registry.clear()

        try:
            await db.close()
            logger.info("Database connection closed")
        except Exception:
            logger.exception("Failed to close database cleanly")

    return lifespan


def create_app(
    app_config: Optional[AppConfig] = None,
    collaborators: Optional[Collaborators] = None,
) -> FastAPI:
    """Create and configure the FastAPI application"""
    cfg = app_config or default_config
    app = FastAPI(
        title="Visa Evaluation API",
        version="1.0.0",
        lifespan=_make_lifespan(cfg, collaborators or Collaborators()),
    )
    app.state.config = cfg

    # Rate limiting
    limiter.enabled = cfg.rate_limit_enabled
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        """Handle rate limit exceeded with JSON response."""
        return JSONResponse(
            status_code=429,
            content={"detail": "Rate limit exceeded", "retry_after": exc.detail},
        )

    # Global exception handlers
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle FastAPI request validation errors with clean response."""
        errors = []
        for error in exc.errors():
            loc = " -> ".join(str(x) for x in error["loc"])
            errors.append({"field": loc, "message": error["msg"]})
        logger.warning("Validation error: %s", errors)
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions with logging."""
        logger.exception("Unexpected error: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    app.include_router(health.router)
    app.include_router(evaluate.router)
    app.include_router(reports.router)
    app.include_router(partner.router)

    return app


# Create app instance
app = create_app()
