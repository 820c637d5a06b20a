"""
FanHub Signaling Backend - Main Application

This is the entry point for the FastAPI application.
It handles:
- WebSocket signaling (presence, call lifecycle, WebRTC relay)
- REST API endpoints (call history, presence, trending, points)
- Background task syncing the presence mirror into the database
"""
from contextlib import asynccontextmanager
import asyncio
import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fanhub.api import router as api_router
from fanhub.api.websocket import router as ws_router
from fanhub.config.redis import get_redis, close_redis
from fanhub.config.settings import settings
from fanhub.services.call import call_sessions, call_timeouts, presence_registry
from fanhub.services.connection import connection_manager
from fanhub.services.metrics import start_metrics_server
from fanhub.services.status_service import status_service
from fanhub.models.database import init_db

# Configure logging
logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # === STARTUP ===
    logger.info("🚀 Starting FanHub signaling backend...")

    # Create database tables
    await init_db()
    logger.info("✅ Database tables created")

    cleanup_task = None
    if status_service.enabled:
        # Ensure redis connection is established
        await get_redis()
        logger.info("✅ Redis connected")

        # Start background cleanup task
        cleanup_task = asyncio.create_task(status_service.cleanup_offline_users())
        logger.info("✅ Background cleanup task started")

    if settings.METRICS_ENABLED:
        start_metrics_server(settings.METRICS_PORT)
        logger.info(f"✅ Metrics exposed on :{settings.METRICS_PORT}")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("🛑 Shutting down...")
    call_timeouts.shutdown()
    if cleanup_task is not None:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass
        await close_redis()


app = FastAPI(
    title="FanHub Signaling Backend",
    description="Presence, one-to-one call signaling and WebRTC relay",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include REST API routes
app.include_router(api_router, prefix="/api")

# Include WebSocket routes
app.include_router(ws_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "FanHub Signaling",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "activeCalls": len(call_sessions),
        "onlineUsers": len(presence_registry),
        "totalConnections": connection_manager.get_total_connections()
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("fanhub.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
