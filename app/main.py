"""FastAPI application entry point."""

import asyncio
import logging

from fastapi import FastAPI

from app.config import settings
from app.database import SessionLocal, init_db
from app.routes import commands
from app.services.auth import AuthSessionManager
from app.services.backend_client import BackendClient
from app.services.commands import CommandBus
from app.services.fetch import FetchCoordinator
from app.services.pipeline import Pipeline
from app.services.state import PipelineState
from app.services.store import SqlStore
from app.services.sync import SyncCoordinator
from app.services.va_client import VAClient
from app.worker import SyncWorker

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="VA Claim Sync",
    description="Normalizes VA.gov benefits data and syncs it to VetClaim Services",
    version=settings.CLIENT_VERSION,
)

# Include routers
app.include_router(commands.router)

worker_stop_event = asyncio.Event()


@app.on_event("startup")
async def startup_event():
    """Wire the pipeline and start the periodic sync worker."""
    logger.info("Starting application...")

    await init_db()
    store = SqlStore(SessionLocal)
    await store.initialize()

    state = PipelineState()
    va_client = VAClient()
    backend = BackendClient()
    auth = AuthSessionManager(store, backend)
    sync = SyncCoordinator(store, backend, auth)
    fetcher = FetchCoordinator(
        va_client,
        store,
        state,
        cooldown_seconds=settings.FETCH_COOLDOWN_SECONDS,
    )
    pipeline = Pipeline(fetcher, sync, auth, store)

    app.state.va_client = va_client
    app.state.backend = backend
    app.state.bus = CommandBus(pipeline, auth, store)
    app.state.worker = SyncWorker(auth, sync, store, state)

    worker_stop_event.clear()
    app.state.worker.start(worker_stop_event)
    logger.info("Periodic sync worker started")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the worker and close HTTP clients."""
    logger.info("Shutting down application...")

    worker_stop_event.set()
    await app.state.worker.stop()

    await app.state.va_client.aclose()
    await app.state.backend.aclose()
    logger.info("Background sync worker stopped")


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}
