"""JSON-RPC 2.0 envelopes exchanged over the stdio channel.

Inbound lines are parsed into :class:`Request`. Outbound messages stay plain
dicts so a relayed backend envelope can be written back without passing
through a model that might reorder or drop its fields.
"""
import json
from typing import Any, Literal

from mcp.types import INTERNAL_ERROR, PARSE_ERROR
from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"

MISSING_CREDENTIAL = -32000

__all__ = [
    "INTERNAL_ERROR",
    "JSONRPC_VERSION",
    "MISSING_CREDENTIAL",
    "PARSE_ERROR",
    "PROTOCOL_VERSION",
    "Request",
    "RequestId",
    "dumps",
    "err",
    "notification",
    "ok",
    "parse_line",
]

RequestId = StrictInt | StrictStr | None


class Request(BaseModel):
    """A request or notification read from stdin."""

    model_config = ConfigDict(extra="allow", frozen=True)

    # Some clients omit the tag entirely; anything other than "2.0" is rejected
    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    method: StrictStr
    id: RequestId = None
    params: dict[str, Any] | None = None

    @property
    def is_notification(self) -> bool:
        return "id" not in self.model_fields_set


def parse_line(line: str) -> Request:
    """Parse one stdin line.

    Raises ``pydantic.ValidationError`` for malformed JSON or a malformed
    envelope; there is no id to answer in either case.
    """
    return Request.model_validate_json(line)


def ok(id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": id, "result": result}


def err(id: Any, code: int, message: str) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": id, "error": {"code": code, "message": message}}


def notification(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "method": method, "params": params or {}}


def dumps(message: dict[str, Any]) -> str:
    """Serialize a message as a single compact line (no trailing newline).

    Output is pure ASCII so lone surrogates from a backend reply stay escaped.
    Raises ValueError for NaN or Infinity, which JSON cannot carry.
    """
    return json.dumps(message, ensure_ascii=True, allow_nan=False, separators=(",", ":"))
