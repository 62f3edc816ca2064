"""
witness_refresh.py — Refreshes the cached producer roster from the RPC node.

Flow:
  GetProducersCmd(ALL) → node → ExecResult{succeed, result}
  succeed  → result re-encoded to JSON, parsed back as a document
  non-empty document → upserted as the witnessStatus singleton

Every failure on the RPC side (transport, bad status, malformed envelope,
succeed=false, a result that is not a roster of
{"witnesses": [{...}, ...]}) is logged with the node URL and
swallowed: the endpoint still answers 200 and the cached roster is left
as it was. Store errors on the write are not swallowed.
"""

import logging

import httpx
from pydantic import ValidationError

from apex_api.core.codec import CodecError, dumps, loads_document
from apex_api.core.rpc import GetProducersCmd, ProducerListType, RpcCaller
from apex_api.models.telemetry import WitnessStatus
from apex_api.services import telemetry_store

logger = logging.getLogger(__name__)


async def fetch_witness_document(caller: RpcCaller) -> dict:
    """Ask the node for every producer; {} when anything goes wrong."""
    try:
        response = await caller.call(GetProducersCmd(list_type=ProducerListType.ALL))
    except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, ValidationError) as exc:
        logger.error("RPC Endpoint connection error: %s (%s)", caller.url, exc)
        return {}

    if not response.succeed:
        logger.error("RPC Endpoint returned failure: %s", caller.url)
        return {}

    try:
        doc = loads_document(dumps(response.result))
        WitnessStatus.model_validate(doc)
    except (CodecError, ValidationError) as exc:
        logger.error("RPC Endpoint returned malformed producers: %s (%s)", caller.url, exc)
        return {}
    return doc


async def refresh_witness_status(db, caller: RpcCaller) -> bool:
    """Pull the roster and cache it. Returns True when the cache was written."""
    doc = await fetch_witness_document(caller)
    if not doc:
        return False

    await telemetry_store.save_witness_status(db, doc)
    logger.info("witnessStatus refreshed (%d witnesses)", len(doc["witnesses"]))
    return True
