"""SubTrack — FastAPI Application Entry Point.

Affiliate order and ad spend reconciliation.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from subtrack.analyzer.state import PipelineCoordinator
from subtrack.api.analysis_routes import router as analysis_router
from subtrack.api.import_routes import router as import_router
from subtrack.core.logging import get_logger
from subtrack.database import ArtifactStore, init_db, test_connection
from subtrack.scheduler.jobs import start_scheduler, stop_scheduler

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("🚀 SubTrack starting up...")
    store = None
    if test_connection():
        try:
            init_db()
            store = ArtifactStore()
        except Exception as e:
            logger.error(f"❌ Table creation failed: {e}")
    else:
        logger.error("❌ Database NOT connected — results will not be persisted")
    app.state.coordinator = PipelineCoordinator(store=store)
    start_scheduler()
    yield
    stop_scheduler()
    logger.info("SubTrack shut down")


app = FastAPI(
    title="SubTrack",
    description="Reconcile marketplace affiliate orders with ad spend and report ROI per Sub ID.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(import_router)
app.include_router(analysis_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "subtrack",
        "version": "1.0.0",
    }
