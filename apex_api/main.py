"""
Apex Dashboard API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups,
and manages the MongoDB connection and RPC client lifecycles.

Run locally:
    uvicorn apex_api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from apex_api import __version__
from apex_api.core.config import settings
from apex_api.core import database
from apex_api.core.rate_limit import limiter, refresh_throttled_handler
from apex_api.core.rpc import RpcCaller, rpc_holder
from apex_api.routes.health import router as health_router
from apex_api.routes.information import router as information_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Open the shared MongoDB and RPC clients on startup, close them on shutdown.
    """
    logger.info("Starting Apex Dashboard API (env: %s)", settings.environment)
    await database.connect_to_mongo()
    rpc_holder.caller = RpcCaller(settings.rpc_url, timeout=settings.rpc_timeout_seconds)
    logger.info("RPC node: %s", settings.rpc_url)
    yield
    logger.info("Shutting down Apex Dashboard API")
    await rpc_holder.caller.aclose()
    rpc_holder.caller = None
    await database.close_mongo_connection()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="Apex Dashboard API",
    description="Block, TPS and witness telemetry for the Apex network dashboards.",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, refresh_throttled_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
# CORS: the dashboards are served from a different origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(information_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "Apex Dashboard API",
        "version": __version__,
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
    }
