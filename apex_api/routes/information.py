"""
information.py — Dashboard data routes.

Routes:
  GET  /api/block/last       — newest block document, {} when none
  GET  /api/tps              — last 20 ten-second TPS samples as chart arrays
  GET  /api/witness          — enriched producer list for the map/table
  POST /api/witness/refresh  — re-cache the producer roster from the RPC node

Bodies are pre-rendered JSON strings (relaxed Extended JSON via
core.codec) so BSON types in store documents survive the trip.

Empty data is never an error here: the dashboards read "{}" / "[]" as
"no data yet". Only an unreachable store produces a 5xx.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from apex_api.core.codec import CodecError, dumps
from apex_api.core.config import settings
from apex_api.core.database import get_db
from apex_api.core.rate_limit import limiter
from apex_api.core.rpc import get_rpc_caller
from apex_api.services import telemetry_store
from apex_api.services.witness_enrichment import enrich_witnesses, render_witnesses
from apex_api.services.witness_refresh import refresh_witness_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["information"])

JSON_MEDIA_TYPE = "application/json"


def _json(body: str) -> Response:
    return Response(content=body, media_type=JSON_MEDIA_TYPE)


def _require_db(db):
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return db


# ── Routes ────────────────────────────────────────────────────────────────────

@router.get("/block/last")
async def get_last_block(db=Depends(get_db)):
    """Return the block with the greatest height, verbatim."""
    block = await telemetry_store.latest_block(_require_db(db))
    if block is None:
        return _json("{}")
    try:
        return _json(dumps(block))
    except CodecError as exc:
        logger.error("Last block serialization failed: %s", exc)
        return _json("{}")


@router.get("/tps")
async def get_tps(db=Depends(get_db)):
    """Return {"labels": [...], "values": [...]} for the newest TPS samples."""
    samples = await telemetry_store.recent_tps(_require_db(db))
    try:
        series = telemetry_store.tps_series(samples)
        return _json(dumps(series.model_dump()))
    except (KeyError, TypeError, ValueError) as exc:
        logger.error("TPS serialization failed: %s", exc)
        return _json("{}")


@router.get("/witness")
async def get_witnesses(db=Depends(get_db)):
    """Return the enriched witness list, [] when there is nothing to show."""
    rows = await enrich_witnesses(
        _require_db(db),
        count_unlisted_producers=settings.count_unlisted_producers,
    )
    return _json(render_witnesses(rows))


@router.post("/witness/refresh", status_code=200)
@limiter.limit(settings.refresh_rate_limit)
async def refresh_witnesses(
    request: Request,  # required by slowapi
    db=Depends(get_db),
    caller=Depends(get_rpc_caller),
):
    """Re-cache the roster; always 200, the cache is only touched on success."""
    db = _require_db(db)
    if caller is None:
        logger.error("RPC caller not initialised; witness refresh skipped")
    else:
        await refresh_witness_status(db, caller)
    return Response(status_code=200)
