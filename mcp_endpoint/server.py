"""FastAPI app serving an MCPServer over MCP Streamable HTTP."""
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from .mcp_server import MCPServer
from .mcp_transport import StreamableHTTPTransport

logger = logging.getLogger(__name__)


def create_app(
    mcp_server: MCPServer,
    session_timeout_minutes: Optional[int] = None,
    log_level: int = logging.INFO,
) -> FastAPI:
    """Build the HTTP app for ``mcp_server``.

    ``session_timeout_minutes`` defaults to ``MCP_SESSION_TIMEOUT_MINUTES``
    or 30. Logging is configured at ``log_level`` unless the root logger
    already has handlers.
    """
    logging.basicConfig(level=log_level)
    if session_timeout_minutes is None:
        session_timeout_minutes = int(os.getenv("MCP_SESSION_TIMEOUT_MINUTES", "30"))
    mcp_transport = StreamableHTTPTransport(mcp_server, session_timeout_minutes)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle manager for FastAPI app."""
        logger.info(f"Starting {mcp_server.name} with Streamable HTTP transport...")
        mcp_transport.start_cleanup()
        logger.info(f"Registered {len(mcp_server.tools)} MCP tools")
        logger.info(f"Registered {len(mcp_server.prompts)} MCP prompts")
        logger.info(f"Registered {len(mcp_server.resources)} MCP resources")
        yield
        logger.info(f"Shutting down {mcp_server.name}...")
        mcp_transport.stop_cleanup()

    app = FastAPI(
        title=mcp_server.name,
        description="MCP server with Streamable HTTP transport",
        version=mcp_server.version,
        lifespan=lifespan,
    )
    app.state.mcp_server = mcp_server
    app.state.mcp_transport = mcp_transport

    @app.post("/mcp")
    async def mcp_post_endpoint(request: Request):
        """MCP Streamable HTTP POST endpoint.

        Handles MCP headers: Mcp-Session-Id, Mcp-Protocol-Version.
        """
        return await mcp_transport.handle_post_request(request)

    @app.get("/mcp")
    async def mcp_get_endpoint(request: Request):
        """MCP Streamable HTTP GET endpoint.

        Opens an SSE stream for server notifications.
        Supports resumption via Last-Event-Id header.
        """
        return await mcp_transport.handle_get_request(request)

    @app.delete("/mcp")
    async def mcp_delete_endpoint(request: Request):
        """Terminate the session named by Mcp-Session-Id."""
        return await mcp_transport.handle_delete_request(request)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": mcp_server.name,
            "version": mcp_server.version,
            "transport": "MCP Streamable HTTP",
            "protocol_version": mcp_server.configuration.protocol_version,
            "sessions": len(mcp_transport.session_manager.sessions),
        }

    return app
