"""
rpc.py — JSON-RPC caller for the Apex core node.

Commands are small pydantic models tagged by a `cmd` literal; each renders
itself to the JSON envelope the node expects:

    GetProducersCmd(list_type=ProducerListType.ALL).envelope()
    → {"cmd": "GetProducers", "listType": "ALL"}

New commands subclass RpcCommand with their own `cmd` literal and fields.

RpcCaller wraps one long-lived httpx.AsyncClient (opened in the app
lifespan, closed on shutdown) and posts commands to the configured node
URL. Transport errors and non-2xx responses raise; callers decide
whether to swallow them.
"""

import logging
from enum import Enum
from typing import Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field

from apex_api.core.codec import parse_envelope
from apex_api.models.telemetry import ExecResult

logger = logging.getLogger(__name__)


class ProducerListType(str, Enum):
    ALL = "ALL"
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"


class RpcCommand(BaseModel):
    """Base for every command the node understands."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    cmd: str

    def envelope(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class GetProducersCmd(RpcCommand):
    cmd: Literal["GetProducers"] = "GetProducers"
    list_type: ProducerListType = Field(default=ProducerListType.ALL, alias="listType")


class RpcCaller:
    """Posts RpcCommand envelopes to a node and parses ExecResult replies."""

    def __init__(self, url: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def post_request(self, url: str, command: RpcCommand) -> str:
        """POST a command to `url` and return the raw response body."""
        response = await self._client.post(
            url,
            json=command.envelope(),
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
        return response.text

    async def call(self, command: RpcCommand) -> ExecResult:
        """Send a command to the configured node and parse the envelope."""
        logger.debug("RPC %s → %s", command.cmd, self.url)
        raw = await self.post_request(self.url, command)
        return parse_envelope(ExecResult, raw)

    async def aclose(self) -> None:
        await self._client.aclose()


class RpcCallerHolder:
    """Process-wide caller slot, filled in by the app lifespan."""

    caller: RpcCaller | None = None


rpc_holder = RpcCallerHolder()


def get_rpc_caller() -> RpcCaller | None:
    """FastAPI dependency — the shared RpcCaller, or None before startup."""
    return rpc_holder.caller
