"""FastAPI application and routes."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .. import __version__
from ..config import ConfigManager
from ..core.batch_pipeline import BatchSummarizer
from ..core.bookmark_manager import BookmarkManager
from ..core.summarizer import Summarizer
from ..models.config import AppConfig
from ..services import build_services

logger = logging.getLogger(__name__)

# Global state (will be initialized in lifespan)
config_manager: ConfigManager = None
runtime_config: AppConfig = None
bookmark_manager: BookmarkManager = None
batch_summarizer: BatchSummarizer = None
summarizer: Summarizer = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    global config_manager, runtime_config, bookmark_manager, batch_summarizer, summarizer

    logger.info("Starting BookmarkBrain API...")

    config_manager = ConfigManager()
    try:
        app_config = config_manager.load_app_config()
        env_settings = config_manager.load_env_settings()
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

    services = build_services(config_manager, app_config, env_settings, recover=True)
    runtime_config = app_config
    bookmark_manager = services.manager
    batch_summarizer = services.pipeline
    summarizer = services.pipeline.summarizer

    logger.info(f"Loaded {len(bookmark_manager.list_bookmarks())} bookmark(s)")

    yield

    from .summarize import cancel_batch_job

    await cancel_batch_job(wait=True)
    logger.info("Shutting down BookmarkBrain API...")


app = FastAPI(
    title="BookmarkBrain API",
    description="Import bookmarks and summarize them with an LLM",
    version=__version__,
    lifespan=lifespan,
)

# Import and include routers
from .bookmarks import router as bookmarks_router
from .health import router as health_router
from .summarize import router as summarize_router

app.include_router(bookmarks_router, prefix="/api/v1", tags=["bookmarks"])
app.include_router(health_router, prefix="/api/v1", tags=["health"])
app.include_router(summarize_router, prefix="/api/v1", tags=["summarize"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "BookmarkBrain API",
        "version": __version__,
        "docs": "/docs",
        "health": "/api/v1/health",
    }
