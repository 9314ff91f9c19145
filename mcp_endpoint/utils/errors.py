"""Custom exception classes for the MCP endpoint."""
from typing import Any, Optional


class MCPError(Exception):
    """Base exception for MCP-related errors."""

    pass


class RequestError(MCPError):
    """A request that cannot be served, answered with a JSON-RPC error.

    Raised by method handlers for lookup and validation failures. The
    dispatcher turns it into an error response and records ``reason`` in the
    instrumentation data; it never reaches the exception reporter.
    """

    def __init__(
        self,
        code: int,
        message: str,
        data: Any = None,
        reason: Optional[str] = None,
    ):
        self.code = code
        self.message = message
        self.data = data
        self.reason = reason
        super().__init__(message)


class MethodAlreadyDefinedError(MCPError):
    """A method name is already taken in the method table."""

    def __init__(self, method_name: str):
        self.method_name = method_name
        super().__init__(f"Method {method_name} already defined")


class DuplicateEntryError(MCPError):
    """A tool, prompt or resource key is already registered."""

    pass


class UnsupportedProtocolVersionError(MCPError, ValueError):
    """Protocol version outside the supported set."""

    pass


class MissingServerContextError(MCPError):
    """A callable requires server_context but the server has none."""

    pass
