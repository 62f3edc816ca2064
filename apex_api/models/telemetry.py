"""
telemetry.py — Pydantic schemas for the dashboard API.

WitnessStatus   — shape of the cached roster document (witnessStatus collection)
EnrichedWitness — one row of GET /api/witness
TpsSeries       — GET /api/tps payload
ExecResult      — response envelope returned by the RPC node

The store documents themselves stay plain dicts on the read path so that
fields the ingester adds are passed through untouched; these models
describe the shapes the API promises.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# ── Roster ────────────────────────────────────────────────────────────────────

class WitnessStatus(BaseModel):
    """
    Shape check for the cached roster. Each entry only has to be an object;
    its fields are projected verbatim, missing ones as null.
    """

    model_config = ConfigDict(extra="allow")

    witnesses: list[dict[str, Any]]


# ── Dashboard rows ────────────────────────────────────────────────────────────

FillKey = Literal["yellowFill", "blackFill"]


class EnrichedWitness(BaseModel):
    """
    A roster entry fused with recent block attribution.

    Roster fields are copied verbatim, whatever type the RPC node gave them.
    Field order is the wire order.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: Any = None
    addr: Any = None
    voteCounts: Any = None
    yield_: str = Field(alias="yield")  # e.g. "50.1%"
    longitude: Any = None
    latitude: Any = None
    radius: int                         # 12 for the current producer, else 4
    fillKey: FillKey

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class TpsSeries(BaseModel):
    """Parallel chart arrays; labels are intentionally blank."""

    labels: list[str] = Field(default_factory=list)
    values: list[int] = Field(default_factory=list)


# ── RPC ───────────────────────────────────────────────────────────────────────

class ExecResult(BaseModel):
    """Envelope returned by every RPC command."""

    model_config = ConfigDict(extra="ignore")

    succeed: bool = False
    result: Any = None
