"""
codec.py — JSON encoding for store documents and RPC envelopes.

Documents read from MongoDB carry BSON types (ObjectId, datetime, Int64)
that the stdlib json module can't render, so everything that leaves the
API goes through bson.json_util in relaxed Extended JSON mode:
  ObjectId  → {"$oid": "..."}
  datetime  → {"$date": "2001-09-09T01:46:40Z"}
  Int64     → plain number

Parsing goes the other way: RPC responses are validated into pydantic
envelopes, and cached documents are rebuilt with json_util.loads so they
round-trip through the store unchanged.
"""

from typing import Any, TypeVar

from bson import json_util
from bson.json_util import RELAXED_JSON_OPTIONS
from pydantic import BaseModel

EnvelopeT = TypeVar("EnvelopeT", bound=BaseModel)


class CodecError(ValueError):
    """Raised when a value cannot be encoded or a string cannot be decoded."""


def dumps(value: Any) -> str:
    """Serialize a value (document, list, primitives) to a JSON string."""
    try:
        return json_util.dumps(value, json_options=RELAXED_JSON_OPTIONS)
    except (TypeError, ValueError, OverflowError) as exc:
        raise CodecError(f"Cannot encode {type(value).__name__}: {exc}") from exc


def loads_document(raw: str) -> dict:
    """
    Parse a JSON string into a store document.

    Only JSON objects are documents; arrays and scalars raise CodecError.
    """
    try:
        parsed = json_util.loads(raw)
    except (TypeError, ValueError) as exc:
        raise CodecError(f"Malformed JSON document: {exc}") from exc
    if not isinstance(parsed, dict):
        raise CodecError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


def parse_envelope(model: type[EnvelopeT], raw: str | bytes) -> EnvelopeT:
    """Validate a JSON string into a typed pydantic envelope."""
    return model.model_validate_json(raw)
