"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import settings
from app.core.logging import setup_logging
from app.routes import alerts_router, contracts_router, health_router
from app.store.memory import SessionStore
from pipeline.orchestrator import ContractPipeline

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the session store and pipeline on startup, drop them on shutdown."""
    setup_logging()

    app.state.store = SessionStore()
    app.state.pipeline = ContractPipeline(app.state.store)
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set; analysis requests will fail")
    logger.info("%s started (env=%s, model=%s)", settings.APP_NAME, settings.APP_ENV, settings.MODEL_NAME)

    yield

    app.state.pipeline = None
    app.state.store = None


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# Register routers
app.include_router(health_router)
app.include_router(contracts_router)
app.include_router(alerts_router)
