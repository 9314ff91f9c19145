"""JSON-RPC 2.0 request/response models."""
from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr
from typing import Any, Dict, Optional, Union, Literal

JSONRPC_VERSION = "2.0"

RequestId = Union[StrictStr, StrictInt]


class JSONRPCRequest(BaseModel):
    """JSON-RPC 2.0 request model.

    A request without ``id`` (or with ``id: null``) is a notification.
    """

    model_config = ConfigDict(extra="ignore")

    jsonrpc: Literal["2.0"]
    method: str = Field(min_length=1)
    params: Optional[Dict[str, Any]] = None
    id: Optional[RequestId] = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


class JSONRPCError(BaseModel):
    """JSON-RPC 2.0 error model."""

    code: int
    message: str
    data: Optional[Any] = None


class JSONRPCResponse(BaseModel):
    """JSON-RPC 2.0 response model.

    Exactly one of ``result`` and ``error`` is serialised; ``result`` may be
    ``None`` and is still emitted as ``null``.
    """

    jsonrpc: Literal["2.0"] = "2.0"
    id: Optional[Union[str, int]]
    result: Optional[Any] = None
    error: Optional[JSONRPCError] = None

    def to_dict(self) -> Dict[str, Any]:
        message: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            message["error"] = self.error.model_dump(exclude_none=True)
        else:
            message["result"] = self.result
        return message


class JSONRPCNotification(BaseModel):
    """Outbound JSON-RPC 2.0 notification (no id)."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ErrorCode:
    """JSON-RPC 2.0 standard error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


def error_response(
    request_id: Optional[Union[str, int]],
    code: int,
    message: str,
    data: Any = None,
) -> Dict[str, Any]:
    """Build a serialised JSON-RPC error response."""
    return JSONRPCResponse(
        id=request_id,
        error=JSONRPCError(code=code, message=message, data=data),
    ).to_dict()


def internal_error_response(request_id: Optional[Union[str, int]]) -> Dict[str, Any]:
    """Response transports send when ``handle`` propagates a failure."""
    return error_response(request_id, ErrorCode.INTERNAL_ERROR, "Internal error")
