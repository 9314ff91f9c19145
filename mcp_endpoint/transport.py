"""Common transport behaviour."""
import json
import logging
from typing import Any, Dict, Optional

from .jsonrpc.handler import usable_id
from .jsonrpc.models import internal_error_response

logger = logging.getLogger(__name__)


def encode_message(message: Dict[str, Any], **dumps_kwargs: Any) -> str:
    """JSON-encode an outgoing message.

    A response whose result cannot be encoded is replaced by an
    ``INTERNAL_ERROR`` response for the same id.
    """
    try:
        return json.dumps(message, **dumps_kwargs)
    except (TypeError, ValueError) as e:
        request_id = usable_id(message)
        logger.error(f"Cannot encode response to request {request_id}: {e}", exc_info=True)
        return json.dumps(internal_error_response(request_id), **dumps_kwargs)


class Transport:
    """Connects an :class:`~mcp_endpoint.mcp_server.MCPServer` to some I/O.

    Creating a transport attaches it to the server, which then routes its
    list-changed notifications through :meth:`broadcast`.
    """

    def __init__(self, server):
        self.server = server
        server.transport = self

    def broadcast(self, notification: Dict[str, Any]):
        """Deliver ``notification`` to every connected session."""
        raise NotImplementedError

    def dispatch(self, message: Any) -> Optional[Dict[str, Any]]:
        """Run ``server.handle``, answering propagated failures with ``INTERNAL_ERROR``.

        The server has already logged and reported the failure. Messages
        without an id get no reply.
        """
        try:
            return self.server.handle(message)
        except Exception as e:
            request_id = usable_id(message)
            logger.warning(f"Request {request_id} failed: {e}")
            if request_id is None:
                return None
            return internal_error_response(request_id)
