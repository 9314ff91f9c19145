"""Line-delimited JSON-RPC over stdin/stdout.

stdout carries protocol messages only; logs go to stderr.
"""
import json
import logging
import sys
import threading
from typing import Any, Dict, Optional, TextIO

from .jsonrpc.models import ErrorCode, error_response
from .transport import Transport, encode_message

logger = logging.getLogger(__name__)


class StdioTransport(Transport):
    """Single-session transport: one request per line in, one reply per line out."""

    def __init__(
        self,
        server,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
    ):
        super().__init__(server)
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.running = False
        self._write_lock = threading.Lock()

    def write_message(self, message: Dict[str, Any]):
        """Write a JSON-RPC message to stdout."""
        raw_text = encode_message(message, separators=(",", ":")) + "\n"
        with self._write_lock:
            self.stdout.write(raw_text)
            self.stdout.flush()

    def broadcast(self, notification: Dict[str, Any]):
        self.write_message(notification)

    def handle_line(self, line: str) -> Optional[Dict[str, Any]]:
        """Serve one line of input and write the reply, if any."""
        line = line.strip()
        if not line:
            return None
        try:
            message = json.loads(line)
        except json.JSONDecodeError as e:
            logger.error(f"JSON parse error: {e}")
            response = error_response(None, ErrorCode.PARSE_ERROR, "Parse error")
        else:
            response = self.dispatch(message)

        if response is not None:
            self.write_message(response)
        return response

    def run(self):
        """Serve stdin until EOF or :meth:`close`."""
        self.running = True
        logger.info(f"Serving {self.server.name} over stdio")
        for line in self.stdin:
            if not self.running:
                break
            self.handle_line(line)
        self.running = False
        logger.info("Transport closed")

    def close(self):
        self.running = False
