"""MCP Streamable HTTP transport implementation."""
import json
import asyncio
import logging
from typing import Any, AsyncGenerator, Callable, Dict, Optional

from fastapi import Request, Response
from fastapi.concurrency import run_in_threadpool
from sse_starlette.sse import EventSourceResponse

from .configuration import SUPPORTED_PROTOCOL_VERSIONS
from .jsonrpc.models import ErrorCode, error_response
from .mcp_session import MCPSessionManager, MCPSession
from .transport import Transport, encode_message

logger = logging.getLogger(__name__)

SESSION_HEADER = "Mcp-Session-Id"
PROTOCOL_VERSION_HEADER = "Mcp-Protocol-Version"


def _json_response(message: Dict[str, Any], headers: Dict[str, str], status_code: int = 200) -> Response:
    return Response(
        content=encode_message(message),
        status_code=status_code,
        media_type="application/json",
        headers=headers,
    )


class StreamableHTTPTransport(Transport):
    """Handles MCP Streamable HTTP transport.

    Requests are POSTed and answered with JSON. Each session may hold a GET
    SSE stream, which is where broadcast notifications are delivered.
    """

    def __init__(self, server, session_timeout_minutes: int = 30):
        super().__init__(server)
        self.session_manager = MCPSessionManager(session_timeout_minutes)
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _headers(self, session: MCPSession) -> Dict[str, str]:
        return {
            SESSION_HEADER: session.session_id,
            PROTOCOL_VERSION_HEADER: self.server.configuration.protocol_version,
        }

    def _resolve_session(self, request: Request, message: Any) -> MCPSession:
        session_id = request.headers.get(SESSION_HEADER)
        if isinstance(message, dict) and message.get("method") == "initialize":
            return self.session_manager.create_session()
        if session_id:
            session = self.session_manager.get_session(session_id)
            if session:
                return session
            logger.warning(f"Session not found: {session_id}, creating new one")
        return self.session_manager.create_session()

    async def handle_post_request(self, request: Request) -> Response:
        """Handle POST request from client.

        Every JSON-RPC message from client MUST be a new HTTP POST.
        Requests are answered with JSON, notifications with 202 Accepted.
        """
        protocol_version = request.headers.get(PROTOCOL_VERSION_HEADER)
        if protocol_version and protocol_version not in SUPPORTED_PROTOCOL_VERSIONS:
            logger.warning(f"Client protocol version not supported: {protocol_version}")

        body = await request.body()
        try:
            message = json.loads(body)
        except ValueError as e:
            logger.warning(f"JSON parse error: {e}")
            return _json_response(
                error_response(None, ErrorCode.PARSE_ERROR, "Parse error"),
                headers={},
                status_code=400,
            )

        session = self._resolve_session(request, message)
        headers = self._headers(session)

        # handle() is synchronous and runs user callables
        response = await run_in_threadpool(self.dispatch, message)
        if response is None:
            return Response(status_code=202, headers=headers)
        return _json_response(response, headers=headers)

    async def handle_get_request(self, request: Request) -> Response:
        """Handle GET request to open SSE stream.

        Clients may issue HTTP GET requests to open an SSE stream,
        allowing the server to push messages without waiting for client requests.
        """
        session_id = request.headers.get(SESSION_HEADER)

        if not session_id:
            return _json_response(
                {"error": "No session ID provided. Initialize first."},
                headers={},
                status_code=400,
            )

        session = self.session_manager.get_session(session_id)
        if not session:
            return _json_response({"error": "Invalid session ID"}, headers={}, status_code=404)

        last_event_id = request.headers.get("Last-Event-Id")

        async def event_generator() -> AsyncGenerator[dict, None]:
            """Generate SSE events."""
            try:
                async for message in session.events(last_event_id):
                    if message is None:
                        yield {"comment": "keepalive"}
                        continue
                    yield {
                        "data": message.data,
                        "event": message.event or "message",
                        "id": message.id
                    }
            except asyncio.CancelledError:
                logger.info(f"SSE stream cancelled for session {session_id}")
                raise

        return EventSourceResponse(event_generator(), headers=self._headers(session))

    async def handle_delete_request(self, request: Request) -> Response:
        """End a session at the client's request."""
        session_id = request.headers.get(SESSION_HEADER)
        if not session_id or not self.session_manager.delete_session(session_id):
            return _json_response({"error": "Invalid session ID"}, headers={}, status_code=404)
        return Response(status_code=200)

    def broadcast(self, notification: Dict[str, Any]):
        """Queue ``notification`` on every session's SSE stream.

        May be called from worker threads; queueing happens on the event loop.
        """
        data = json.dumps(notification)
        sessions = self.session_manager.active_sessions()
        for session in sessions:
            self._call_on_loop(session.enqueue_message, data, "message")
        logger.debug(f"Broadcast {notification.get('method')} to {len(sessions)} sessions")

    def _call_on_loop(self, fn: Callable[..., Any], *args: Any):
        loop = self._loop
        if loop is None or loop.is_closed():
            fn(*args)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            fn(*args)
        else:
            loop.call_soon_threadsafe(fn, *args)

    def start_cleanup(self):
        """Start background cleanup of expired sessions; call from the event loop."""
        self._loop = asyncio.get_running_loop()
        self.session_manager.start_background_cleanup()

    def stop_cleanup(self):
        """Stop background cleanup."""
        self.session_manager.stop_background_cleanup()
