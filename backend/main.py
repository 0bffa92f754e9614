"""
DeliveryBot Backend - Main Application Entry Point
"""
import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core import settings, logger, utcnow
from app.api.routes import chat
from app.orchestration.delivery.machine import get_conversation_engine
from app.services.order_store import get_order_store
from app.services.session_store import get_session_store, run_session_sweeper


def init_database() -> None:
    """Create tables and seed sample orders into an empty database."""
    orders = get_order_store()
    orders.init_schema()
    if not settings.SEED_ON_STARTUP:
        return

    count = orders.count()
    if count == 0:
        orders.reset_to_seed()
        logger.info("Database initialized with seed data")
    else:
        logger.info(f"Database has {count} existing orders")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} in {settings.APP_ENV} mode")
    init_database()
    sweeper = asyncio.create_task(run_session_sweeper(get_session_store()))
    yield
    # Shutdown
    logger.info("Shutting down...")
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    await get_conversation_engine().dispatcher.drain()


app = FastAPI(
    title=settings.APP_NAME,
    description="Virtual Delivery Assistant",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API Routers
app.include_router(chat.router, prefix="/api", tags=["Chat"])


@app.get("/api/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "OK",
        "app": settings.APP_NAME,
        "env": settings.APP_ENV,
        "timestamp": utcnow().isoformat(),
        "active_sessions": get_session_store().count(),
    }
