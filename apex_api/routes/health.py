"""
Health check endpoint.

Lets the dashboards and container health checks distinguish a dead API from a
live API whose MongoDB or RPC node is missing.
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from apex_api import __version__
from apex_api.core import database as db_module
from apex_api.core import rpc as rpc_module
from apex_api.core.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # "ok" whenever the process answers
    version: str
    database: str  # "connected" | "disconnected"
    rpc: str  # "configured" | "unconfigured"
    environment: str


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    """
    Report store and RPC availability. Always HTTP 200; outages show in the body.
    """
    db_status = "disconnected"
    client = db_module.db_client.client
    try:
        if client is not None:
            await client.admin.command("ping")
            db_status = "connected"
    except Exception as exc:
        logger.warning("DB ping failed: %s", exc)

    return HealthResponse(
        status="ok",
        version=__version__,
        database=db_status,
        rpc="configured" if rpc_module.rpc_holder.caller is not None else "unconfigured",
        environment=settings.environment,
    )
