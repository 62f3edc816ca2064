"""
telemetry_store.py — Query adapters over the ingester's collections.

Every read the dashboard makes goes through one of these functions, so the
route and service layers never build Mongo filters themselves.

  latest_block(db)                 — highest-height block, or None
  recent_tps(db)                   — newest TPS_SAMPLE_LIMIT tps_tensec docs
  miner_addresses(db)              — every known producer address
  recent_producers(db, since)      — producer of each block at/after `since`
  witness_status(db)               — the cached roster singleton, or None
  save_witness_status(db, doc)     — upsert the roster singleton

Store errors (network, auth, server selection) propagate to the caller.
"""

import logging
from collections.abc import AsyncIterator
from datetime import datetime

from pymongo import DESCENDING

from apex_api.core.database import (
    BLOCK_COLLECTION,
    MINER_COLLECTION,
    TPS_COLLECTION,
    WITNESS_STATUS_COLLECTION,
)
from apex_api.models.telemetry import TpsSeries

logger = logging.getLogger(__name__)

TPS_SAMPLE_LIMIT = 20

# Fixed _id of the roster document; refresh upserts on it so concurrent
# refreshes can never create a second document.
WITNESS_STATUS_ID = "witnessStatus"


# ── Blocks ────────────────────────────────────────────────────────────────────

async def latest_block(db) -> dict | None:
    return await db[BLOCK_COLLECTION].find_one({}, sort=[("height", DESCENDING)])


async def recent_producers(db, since: datetime) -> AsyncIterator[str]:
    """Yield the producer of every block whose timeStamp is >= since."""
    cursor = db[BLOCK_COLLECTION].find(
        {"timeStamp": {"$gte": since}},
        {"producer": 1, "_id": 0},
    )
    async for doc in cursor:
        producer = doc.get("producer")
        if producer is not None:
            yield str(producer)


# ── Miners ────────────────────────────────────────────────────────────────────

async def miner_addresses(db) -> list[str]:
    cursor = db[MINER_COLLECTION].find({}, {"addr": 1, "_id": 0})
    return [str(doc["addr"]) async for doc in cursor if doc.get("addr") is not None]


# ── TPS ───────────────────────────────────────────────────────────────────────

async def recent_tps(db, limit: int = TPS_SAMPLE_LIMIT) -> list[dict]:
    cursor = db[TPS_COLLECTION].find({}).sort("timeStamp", DESCENDING).limit(limit)
    return [doc async for doc in cursor]


def tps_series(samples: list[dict]) -> TpsSeries:
    """
    Project tps_tensec docs (newest first) into chart arrays.

    Labels stay blank — the client renders its own axis. Order is kept
    as given, i.e. descending by timeStamp.
    """
    return TpsSeries(
        labels=["" for _ in samples],
        values=[int(sample["txs"]) for sample in samples],
    )


# ── Witness roster ────────────────────────────────────────────────────────────

async def witness_status(db) -> dict | None:
    """
    Return the roster singleton.

    Prefers the document under WITNESS_STATUS_ID; falls back to whatever
    the store returns first so rosters cached before the sentinel key
    existed are still served.
    """
    collection = db[WITNESS_STATUS_COLLECTION]
    doc = await collection.find_one({"_id": WITNESS_STATUS_ID})
    if doc is None:
        doc = await collection.find_one({})
    return doc


async def save_witness_status(db, doc: dict) -> None:
    """Replace-or-insert the roster singleton and drop any stray copies."""
    collection = db[WITNESS_STATUS_COLLECTION]
    body = {k: v for k, v in doc.items() if k != "_id"}
    await collection.replace_one({"_id": WITNESS_STATUS_ID}, body, upsert=True)
    removed = await collection.delete_many({"_id": {"$ne": WITNESS_STATUS_ID}})
    if removed.deleted_count:
        logger.info("Removed %d stale witnessStatus document(s)", removed.deleted_count)
