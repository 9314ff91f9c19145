"""How a tool or prompt callable accepts the server context.

Every :class:`~mcp_endpoint.tool.Tool` and :class:`~mcp_endpoint.prompt.Prompt`
records a :class:`ContextMode` when it is built. Dispatch consults only that
descriptor; the callable's signature is never inspected per call.
"""
from enum import Enum
import inspect
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .utils.errors import MissingServerContextError

SERVER_CONTEXT_PARAM = "server_context"


class ContextMode(str, Enum):
    NONE = "none"
    OPTIONAL = "optional"
    REQUIRED = "required"
    VARIADIC = "variadic"

    @classmethod
    def of(cls, fn: Callable) -> "ContextMode":
        """Derive the mode from ``fn``'s signature (done once, at build time)."""
        try:
            signature = inspect.signature(fn)
        except (TypeError, ValueError):
            return cls.NONE
        param = signature.parameters.get(SERVER_CONTEXT_PARAM)
        if param is not None and param.kind in (
            inspect.Parameter.KEYWORD_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            if param.default is inspect.Parameter.empty:
                return cls.REQUIRED
            return cls.OPTIONAL
        if any(
            p.kind is inspect.Parameter.VAR_KEYWORD
            for p in signature.parameters.values()
        ):
            return cls.VARIADIC
        return cls.NONE


def context_kwargs(
    mode: ContextMode, server_context: Optional[Mapping[str, Any]], name: str
) -> Dict[str, Any]:
    """Extra keyword arguments carrying the server context for ``mode``.

    Raises:
        MissingServerContextError: ``mode`` is REQUIRED and there is no context
    """
    if mode is ContextMode.NONE:
        return {}
    if mode is ContextMode.OPTIONAL:
        if server_context is None:
            return {}
        return {SERVER_CONTEXT_PARAM: server_context}
    if mode is ContextMode.REQUIRED and server_context is None:
        raise MissingServerContextError(f"{name} requires server_context")
    return {SERVER_CONTEXT_PARAM: server_context}


def invoke_with_context(
    fn: Callable,
    mode: ContextMode,
    server_context: Optional[Mapping[str, Any]],
    name: str,
    args: Tuple[Any, ...] = (),
    kwargs: Optional[Mapping[str, Any]] = None,
) -> Any:
    """Call ``fn(*args, **kwargs)`` plus the context ``mode`` asks for."""
    call_kwargs = dict(kwargs or {})
    # Callers cannot supply the context through request arguments.
    call_kwargs.pop(SERVER_CONTEXT_PARAM, None)
    call_kwargs.update(context_kwargs(mode, server_context, name))
    return fn(*args, **call_kwargs)
