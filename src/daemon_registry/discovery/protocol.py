"""JSON-RPC 2.0 types for the ``tools/list`` capability request.

Models use extra="ignore" so daemons speaking newer protocol revisions still parse.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

JSONRPC_VERSION = "2.0"
TOOLS_LIST_METHOD = "tools/list"

# JSON-RPC 2.0 standard error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
SERVER_ERROR = -32000


def _rpc_model_config() -> ConfigDict:
    return ConfigDict(extra="ignore", populate_by_name=True)


class JSONRPCError(BaseModel):
    """JSON-RPC 2.0 error object."""

    model_config = _rpc_model_config()

    code: int = Field(default=INTERNAL_ERROR, description="Error code (integer)")
    message: str = Field(default="Unknown error", description="Short error description")
    data: Any = Field(default=None, description="Optional additional data")


class ToolDescriptor(BaseModel):
    """One entry of a ``tools/list`` result."""

    model_config = _rpc_model_config()

    name: str
    description: str = ""


class ListToolsResult(BaseModel):
    """``result`` member of a ``tools/list`` response."""

    model_config = _rpc_model_config()

    tools: list[ToolDescriptor]


class JSONRPCReply(BaseModel):
    """Any JSON-RPC 2.0 response: success carries ``result``, failure carries ``error``."""

    model_config = _rpc_model_config()

    jsonrpc: Literal["2.0"] = Field(default="2.0")
    id: str | int | None = Field(default=None)
    result: dict[str, Any] | None = Field(default=None)
    error: JSONRPCError | None = Field(default=None)


def tools_list_request(request_id: int = 1) -> dict[str, Any]:
    """Body of a ``tools/list`` request."""
    return {"jsonrpc": JSONRPC_VERSION, "method": TOOLS_LIST_METHOD, "id": request_id}
