"""FastAPI application entry point for the fraud analysis service."""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware.error_handler import global_exception_handler
from src.api.middleware.logging import StructuredLoggingMiddleware
from src.api.routes.analysis import router as analysis_router
from src.api.routes.health import router as health_router
from src.config import settings
from src.domains.fraud.config import FraudConfig
from src.domains.fraud.errors import EmbeddingError, FraudAnalysisError
from src.shared.logging import setup_logging

logger = structlog.get_logger()

# Track app start time for uptime calculation
APP_START_TIME: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: load the embedding model and build the analyzer."""
    global APP_START_TIME
    APP_START_TIME = time.time()
    setup_logging(settings.log_level, json_output=not settings.debug)

    logger.info(
        "fraud_mesh_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
    )

    from src.db.database import async_session_factory, engine
    from src.domains.fraud.analyzer import FraudAnalyzer
    from src.domains.fraud.embedding import EmbeddingModel
    from src.domains.fraud.history import HistoryStore

    embedder = EmbeddingModel(settings.embedding_model_path)
    try:
        embedder.load()
    except EmbeddingError:
        # Readiness reports the model as missing; pattern scoring fails until it loads.
        logger.warning("embedding_model_unavailable", path=settings.embedding_model_path)
    else:
        if embedder.dimension != settings.embedding_dimension:
            logger.warning(
                "embedding_dimension_mismatch",
                model_dimension=embedder.dimension,
                expected=settings.embedding_dimension,
            )

    app.state.embedder = embedder
    app.state.analyzer = FraudAnalyzer(
        store=HistoryStore(async_session_factory),
        embedder=embedder,
        config=FraudConfig.from_env(),
    )
    logger.info("fraud_analyzer_ready", agents=[a.name for a in app.state.analyzer.agents])

    yield

    await engine.dispose()
    logger.info("fraud_mesh_shutting_down")


app = FastAPI(
    title="Fraud Mesh",
    description="Real-time multi-agent transaction fraud scoring",
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Structured logging middleware
app.add_middleware(StructuredLoggingMiddleware)

# Exception handlers
app.add_exception_handler(FraudAnalysisError, global_exception_handler)
app.add_exception_handler(ValueError, global_exception_handler)
app.add_exception_handler(LookupError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Register routers
app.include_router(health_router)
app.include_router(analysis_router)


def get_uptime() -> int:
    """Get application uptime in seconds."""
    if APP_START_TIME == 0.0:
        return 0
    return int(time.time() - APP_START_TIME)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("src.main:app", host=settings.host, port=settings.port)
