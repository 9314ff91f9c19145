"""MCP Session Management for Streamable HTTP transport."""
import asyncio
import uuid
import logging
from typing import AsyncIterator, Dict, Optional, List
from dataclasses import dataclass, field
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)

# Messages kept per session for Last-Event-Id replay, and the most a live
# stream may fall behind before the oldest queued message is dropped.
MAX_REPLAY_MESSAGES = 100


def _bounded_queue() -> "asyncio.Queue[MCPMessage]":
    return asyncio.Queue(maxsize=MAX_REPLAY_MESSAGES)


@dataclass
class MCPMessage:
    """Represents a message in the SSE stream."""
    id: str
    data: str
    event: Optional[str] = None


@dataclass
class MCPSession:
    """Represents an active MCP session.

    Every message is kept in the replay buffer. Only sessions with an open
    SSE stream also get it on the live queue.
    """
    session_id: str
    created_at: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)
    message_queue: "asyncio.Queue[MCPMessage]" = field(default_factory=_bounded_queue)
    messages_sent: List[MCPMessage] = field(default_factory=list)
    last_event_id: int = 0
    open_streams: int = 0

    def get_next_event_id(self) -> str:
        """Generate next event ID for SSE."""
        self.last_event_id += 1
        return str(self.last_event_id)

    def enqueue_message(self, data: str, event: Optional[str] = None) -> MCPMessage:
        """Record a message and hand it to open streams; must run on the event loop thread."""
        message = MCPMessage(id=self.get_next_event_id(), data=data, event=event)
        self.messages_sent.append(message)
        del self.messages_sent[:-MAX_REPLAY_MESSAGES]
        if self.open_streams:
            if self.message_queue.full():
                dropped = self.message_queue.get_nowait()
                logger.warning(
                    f"Session {self.session_id} stream is behind, dropped event {dropped.id}"
                )
            self.message_queue.put_nowait(message)
        return message

    def get_messages_after(self, last_event_id: str) -> List[MCPMessage]:
        """Get messages after a specific event ID for resumption."""
        try:
            last_id = int(last_event_id)
        except (TypeError, ValueError):
            return []
        return [msg for msg in self.messages_sent if int(msg.id) > last_id]

    async def events(
        self, last_event_id: Optional[str] = None, keepalive: float = 30.0
    ) -> AsyncIterator[Optional[MCPMessage]]:
        """Yield the replay after ``last_event_id``, then live messages.

        Yields ``None`` whenever ``keepalive`` seconds pass without a message.
        Each event id is delivered at most once per stream.
        """
        self.open_streams += 1
        delivered = 0
        try:
            replay = self.get_messages_after(last_event_id) if last_event_id else []
            for message in replay:
                delivered = int(message.id)
                yield message

            while True:
                try:
                    message = await asyncio.wait_for(self.message_queue.get(), timeout=keepalive)
                except asyncio.TimeoutError:
                    yield None
                    continue
                if int(message.id) <= delivered:
                    continue
                delivered = int(message.id)
                yield message
        finally:
            self.open_streams -= 1
            if not self.open_streams:
                while not self.message_queue.empty():
                    self.message_queue.get_nowait()


class MCPSessionManager:
    """Manages MCP sessions for Streamable HTTP transport."""

    def __init__(self, session_timeout_minutes: int = 30):
        self.sessions: Dict[str, MCPSession] = {}
        self.session_timeout = timedelta(minutes=session_timeout_minutes)
        self._cleanup_task: Optional[asyncio.Task] = None

    def create_session(self) -> MCPSession:
        """Create a new MCP session."""
        session_id = uuid.uuid4().hex
        session = MCPSession(session_id=session_id)
        self.sessions[session_id] = session
        logger.info(f"Created MCP session: {session_id}")
        return session

    def get_session(self, session_id: str) -> Optional[MCPSession]:
        """Get an existing session by ID."""
        session = self.sessions.get(session_id)
        if session:
            session.last_activity = datetime.now()
        return session

    def delete_session(self, session_id: str) -> bool:
        """Delete a session."""
        if self.sessions.pop(session_id, None) is None:
            return False
        logger.info(f"Deleted MCP session: {session_id}")
        return True

    def active_sessions(self) -> List[MCPSession]:
        return list(self.sessions.values())

    async def cleanup_expired_sessions(self):
        """Remove sessions that have been inactive for too long."""
        now = datetime.now()
        expired = [
            sid for sid, session in self.sessions.items()
            if now - session.last_activity > self.session_timeout
        ]
        for session_id in expired:
            self.delete_session(session_id)
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")

    async def start_cleanup_task(self):
        """Start background task to clean up expired sessions."""
        while True:
            await asyncio.sleep(300)  # Every 5 minutes
            await self.cleanup_expired_sessions()

    def start_background_cleanup(self):
        """Start cleanup task in background."""
        if not self._cleanup_task:
            self._cleanup_task = asyncio.create_task(self.start_cleanup_task())

    def stop_background_cleanup(self):
        """Stop cleanup task."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            self._cleanup_task = None
