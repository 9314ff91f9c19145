"""JSON-RPC 2.0 method table and envelope validation."""
from typing import Any, Callable, Dict, Optional, Tuple
import logging
import threading

from pydantic import ValidationError

from .models import JSONRPCRequest, ErrorCode
from ..utils.errors import MethodAlreadyDefinedError, RequestError

logger = logging.getLogger(__name__)


def usable_id(raw: Any) -> Optional[Any]:
    """Return the request id of a malformed message if it can be echoed back."""
    if not isinstance(raw, dict):
        return None
    request_id = raw.get("id")
    if isinstance(request_id, bool):
        return None
    if isinstance(request_id, (str, int)):
        return request_id
    return None


class JSONRPCHandler:
    """Maps JSON-RPC method names to handlers.

    Built-in methods are registered once by the server; custom methods are
    added by callers and may not shadow a built-in or each other.
    """

    def __init__(self):
        self.methods: Dict[str, Callable] = {}
        self.custom_methods: Dict[str, Callable] = {}
        self._lock = threading.Lock()

    def register_method(self, method_name: str, handler: Callable):
        """Register a built-in JSON-RPC method handler.

        Args:
            method_name: Name of the JSON-RPC method (e.g., "tools/list")
            handler: Callable taking ``(params, call_data)``
        """
        with self._lock:
            if method_name in self.methods:
                raise MethodAlreadyDefinedError(method_name)
            self.methods = {**self.methods, method_name: handler}
        logger.debug(f"Registered JSON-RPC method: {method_name}")

    def define_custom_method(self, method_name: str, handler: Callable):
        """Register a caller-defined method.

        Args:
            method_name: Name of the JSON-RPC method
            handler: Callable taking ``(params)``; ``None`` return means no result

        Raises:
            MethodAlreadyDefinedError: name is a built-in or already defined
        """
        with self._lock:
            if method_name in self.methods or method_name in self.custom_methods:
                raise MethodAlreadyDefinedError(method_name)
            self.custom_methods = {**self.custom_methods, method_name: handler}
        logger.info(f"Registered custom method: {method_name}")

    def find_method(self, method_name: str) -> Optional[Tuple[Callable, bool]]:
        """Look up a handler, built-ins first.

        Returns:
            ``(handler, is_builtin)`` or ``None`` when the method is unknown
        """
        handler = self.methods.get(method_name)
        if handler is not None:
            return handler, True
        handler = self.custom_methods.get(method_name)
        if handler is not None:
            return handler, False
        return None

    def has_method(self, method_name: str) -> bool:
        return self.find_method(method_name) is not None

    @staticmethod
    def parse_request(raw: Any) -> JSONRPCRequest:
        """Validate a decoded message as a JSON-RPC 2.0 request.

        Raises:
            RequestError: ``INVALID_REQUEST`` with the offending id, if any
        """
        if not isinstance(raw, dict):
            raise RequestError(ErrorCode.INVALID_REQUEST, "Invalid Request")
        try:
            return JSONRPCRequest.model_validate(raw)
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise RequestError(
                ErrorCode.INVALID_REQUEST, "Invalid Request", data=details
            )
