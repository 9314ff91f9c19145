"""JSON-RPC 2.0 implementation for MCP protocol."""
from .models import (
    JSONRPCRequest,
    JSONRPCResponse,
    JSONRPCError,
    JSONRPCNotification,
    ErrorCode,
    error_response,
    internal_error_response,
)
from .handler import JSONRPCHandler

__all__ = [
    "JSONRPCRequest",
    "JSONRPCResponse",
    "JSONRPCError",
    "JSONRPCNotification",
    "ErrorCode",
    "JSONRPCHandler",
    "error_response",
    "internal_error_response",
]
