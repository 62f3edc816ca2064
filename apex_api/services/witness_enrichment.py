"""
witness_enrichment.py — Builds the witness map/table rows for GET /api/witness.

Three store reads are fused with the cached roster:

  1. latest block      → current producer + window anchor T
  2. miner collection  → zero-seeded tally, one entry per known address
  3. blocks since T-1h → per-producer block count in the window
  4. witnessStatus     → roster, which drives output order and membership

Each roster entry becomes an EnrichedWitness:

  yield    = min(count × 100 / 343, 100), one decimal, half-up, "%" suffix
  radius   = 12 for the current producer, else 4
  fillKey  = "yellowFill" for the current producer, else "blackFill"

343 is the nominal number of slots a producer is expected to fill per
hour across the consensus schedule.

USAGE
─────
    rows = await enrich_witnesses(db)
    body = render_witnesses(rows)   # JSON array string, "[]" on failure
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from pydantic import ValidationError

from apex_api.core.codec import CodecError, dumps
from apex_api.models.telemetry import EnrichedWitness, WitnessStatus
from apex_api.services import telemetry_store

logger = logging.getLogger(__name__)

# ── Domain constants ──────────────────────────────────────────────────────────

NOMINAL_SLOTS_PER_HOUR = 343
ATTRIBUTION_WINDOW = timedelta(milliseconds=3_600_000)
MAX_YIELD = Decimal("100.0")

CURRENT_PRODUCER_RADIUS = 12
DEFAULT_RADIUS = 4
CURRENT_PRODUCER_FILL = "yellowFill"
DEFAULT_FILL = "blackFill"

_ONE_DECIMAL = Decimal("0.1")


# ── Pure helpers ──────────────────────────────────────────────────────────────

def format_yield(block_count: int) -> str:
    """
    Render a block count as a yield percentage string.

    Exact decimal arithmetic keeps half-way cases (e.g. 0.05) rounding up
    the way a dashboard reader expects, not to the nearest binary float.

    >>> format_yield(172)
    '50.1%'
    >>> format_yield(500)
    '100.0%'
    """
    raw = Decimal(block_count) * 100 / NOMINAL_SLOTS_PER_HOUR
    clamped = min(raw, MAX_YIELD)
    return f"{clamped.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)}%"


def project_witness(witness: dict, counts: dict[str, int], current_producer) -> EnrichedWitness:
    """Turn one roster entry into a dashboard row."""
    addr = witness.get("addr")
    is_current = addr is not None and addr == current_producer
    return EnrichedWitness(
        name=witness.get("name"),
        addr=addr,
        voteCounts=witness.get("voteCounts"),
        yield_=format_yield(counts.get(addr, 0)),
        longitude=witness.get("longitude"),
        latitude=witness.get("latitude"),
        radius=CURRENT_PRODUCER_RADIUS if is_current else DEFAULT_RADIUS,
        fillKey=CURRENT_PRODUCER_FILL if is_current else DEFAULT_FILL,
    )


# ── Store-backed steps ────────────────────────────────────────────────────────

async def tally_recent_blocks(
    db,
    anchor: datetime,
    *,
    count_unlisted_producers: bool = True,
) -> dict[str, int]:
    """
    Count blocks per producer in [anchor - 1h, ∞).

    The miner collection seeds the tally at zero. Producers missing from
    it are added on first sight unless count_unlisted_producers is False,
    in which case their blocks are ignored.
    """
    counts = {addr: 0 for addr in await telemetry_store.miner_addresses(db)}
    since = anchor - ATTRIBUTION_WINDOW
    async for producer in telemetry_store.recent_producers(db, since):
        if producer in counts:
            counts[producer] += 1
        elif count_unlisted_producers:
            counts[producer] = 1
    return counts


async def enrich_witnesses(db, *, count_unlisted_producers: bool = True) -> list[dict]:
    """
    Return the enriched roster as a list of wire-ready dicts.

    Empty list when there is no block yet, no usable cached roster, or
    the latest block has no timeStamp to anchor the window on.
    """
    block = await telemetry_store.latest_block(db)
    if block is None:
        return []

    anchor = block.get("timeStamp")
    if not isinstance(anchor, datetime):
        logger.warning(
            "Latest block (height=%s) has no usable timeStamp: %r",
            block.get("height"),
            anchor,
        )
        return []
    current_producer = block.get("producer")

    counts = await tally_recent_blocks(
        db, anchor, count_unlisted_producers=count_unlisted_producers
    )

    roster = await telemetry_store.witness_status(db)
    if roster is None:
        return []

    try:
        WitnessStatus.model_validate(roster)
    except ValidationError as exc:
        logger.warning("Cached witnessStatus is malformed: %s", exc)
        return []

    return [
        project_witness(w, counts, current_producer).to_document()
        for w in roster["witnesses"]
    ]


def render_witnesses(rows: list[dict]) -> str:
    """Serialize enriched rows; a failure yields "[]" rather than partial output."""
    try:
        return dumps(rows)
    except CodecError as exc:
        logger.error("Witness list serialization failed: %s", exc)
        return "[]"
