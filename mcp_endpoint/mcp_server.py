"""MCP server: method table, dispatch and notification fan-out.

``MCPServer.handle`` runs one request to completion on the calling thread:

1. validate the JSON-RPC envelope (``INVALID_REQUEST`` otherwise)
2. look the method up, built-ins before custom methods (``METHOD_NOT_FOUND``)
3. call the handler, timed for the instrumentation callback
4. wrap the return value as ``result``

Lookup failures inside a handler raise ``RequestError`` and become error
responses. Tool and prompt failures are absorbed by ``MCPHandler`` into an
``isError`` result. Every other failure is passed to the exception reporter
and re-raised for the transport to answer.
"""
import json
import logging
import time
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

from . import __version__
from .capabilities import build_capabilities, negotiate_protocol_version
from .configuration import Configuration, get_configuration
from .jsonrpc.handler import JSONRPCHandler, usable_id
from .jsonrpc.models import (
    ErrorCode,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    error_response,
)
from .mcp_handler import MCPHandler, ResourcesReadHandler
from .prompt import Prompt, define_prompt
from .registry import Registry
from .resource import Resource, ResourceTemplate
from .tool import Tool, define_tool
from .transport import encode_message
from .utils.errors import RequestError

logger = logging.getLogger(__name__)

TOOLS_LIST_CHANGED = "notifications/tools/list_changed"
PROMPTS_LIST_CHANGED = "notifications/prompts/list_changed"
RESOURCES_LIST_CHANGED = "notifications/resources/list_changed"


class MCPServer:
    """Protocol endpoint exposing tools, prompts and resources.

    Args:
        name: ``serverInfo.name`` reported by ``initialize``
        version: ``serverInfo.version``
        instructions: Optional usage instructions sent with ``initialize``
        tools, prompts, resources, resource_templates: Initial registry entries
        server_context: Mapping handed to tools and prompts that accept it
        configuration: Per-server configuration; the process-wide default
            otherwise. Either way it is copied here.
        resources_read_handler: Serves ``resources/read``
    """

    def __init__(
        self,
        name: str = "mcp-endpoint",
        version: str = __version__,
        instructions: Optional[str] = None,
        tools: Iterable[Tool] = (),
        prompts: Iterable[Prompt] = (),
        resources: Iterable[Resource] = (),
        resource_templates: Iterable[ResourceTemplate] = (),
        server_context: Optional[Mapping[str, Any]] = None,
        configuration: Optional[Configuration] = None,
        resources_read_handler: Optional[ResourcesReadHandler] = None,
    ):
        self.name = name
        self.version = version
        self.instructions = instructions
        self.configuration = (configuration or get_configuration()).copy()
        self.transport = None

        self.mcp_handler = MCPHandler(self.configuration, server_context)
        self.mcp_handler.tools.extend(tools)
        self.mcp_handler.prompts.extend(prompts)
        self.mcp_handler.resources.extend(resources)
        self.mcp_handler.resource_templates.extend(resource_templates)
        self.mcp_handler.resources_read_handler = resources_read_handler

        self.jsonrpc_handler = JSONRPCHandler()
        self._register_builtin_methods()

    def _register_builtin_methods(self):
        h = self.mcp_handler
        for method_name, handler in (
            ("initialize", self._initialize),
            ("notifications/initialized", self._initialized),
            ("ping", self._ping),
            ("tools/list", h.list_tools),
            ("tools/call", h.call_tool),
            ("prompts/list", h.list_prompts),
            ("prompts/get", h.get_prompt),
            ("resources/list", h.list_resources),
            ("resources/read", h.read_resource),
            ("resources/templates/list", h.list_resource_templates),
        ):
            self.jsonrpc_handler.register_method(method_name, handler)

    @property
    def server_context(self) -> Optional[Mapping[str, Any]]:
        return self.mcp_handler.server_context

    @property
    def tools(self) -> Registry[Tool]:
        return self.mcp_handler.tools

    @property
    def prompts(self) -> Registry[Prompt]:
        return self.mcp_handler.prompts

    @property
    def resources(self) -> Registry[Resource]:
        return self.mcp_handler.resources

    @property
    def resource_templates(self) -> Registry[ResourceTemplate]:
        return self.mcp_handler.resource_templates

    @property
    def capabilities(self) -> Dict[str, Any]:
        return build_capabilities(
            self.tools, self.prompts, self.resources, self.resource_templates
        )

    # -- registration --

    def add_tool(self, tool: Tool) -> Tool:
        return self.tools.add(tool)

    def define_tool(self, name: str, call: Callable[..., Any], **kwargs) -> Tool:
        """Build a tool with :func:`~mcp_endpoint.tool.define_tool` and register it."""
        return self.tools.add(define_tool(name, call, **kwargs))

    def add_prompt(self, prompt: Prompt) -> Prompt:
        return self.prompts.add(prompt)

    def define_prompt(self, name: str, template: Callable[..., Any], **kwargs) -> Prompt:
        return self.prompts.add(define_prompt(name, template, **kwargs))

    def add_resource(self, resource: Resource) -> Resource:
        return self.resources.add(resource)

    def add_resource_template(self, template: ResourceTemplate) -> ResourceTemplate:
        return self.resource_templates.add(template)

    def resources_read_handler(self, handler: ResourcesReadHandler) -> ResourcesReadHandler:
        """Set the ``resources/read`` handler; usable as a decorator."""
        self.mcp_handler.resources_read_handler = handler
        return handler

    def define_custom_method(self, method_name: str, handler: Callable[[Dict[str, Any]], Any]):
        """Serve ``method_name`` with ``handler(params)``.

        Raises:
            MethodAlreadyDefinedError: the name is a built-in or already defined
        """
        self.jsonrpc_handler.define_custom_method(method_name, handler)

    # -- dispatch --

    def handle(self, request: Any) -> Optional[Dict[str, Any]]:
        """Serve one decoded JSON-RPC message.

        Returns:
            The response mapping, or ``None`` for notifications
        """
        try:
            rpc_request = self.jsonrpc_handler.parse_request(request)
        except RequestError as e:
            logger.warning(f"Invalid request: {e.data}")
            return error_response(usable_id(request), e.code, e.message, e.data)

        call_data: Dict[str, Any] = {"method": rpc_request.method}
        start = time.monotonic()
        try:
            return self._dispatch(rpc_request, request, call_data)
        finally:
            call_data["duration"] = time.monotonic() - start
            self.configuration.instrument(call_data)

    def _dispatch(
        self,
        rpc_request: JSONRPCRequest,
        request: Dict[str, Any],
        call_data: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        method = rpc_request.method
        found = self.jsonrpc_handler.find_method(method)
        if found is None:
            logger.debug(f"Method not found: {method}")
            call_data["error"] = "method_not_found"
            if rpc_request.is_notification:
                return None
            return error_response(
                rpc_request.id, ErrorCode.METHOD_NOT_FOUND, f"Method not found: {method}"
            )

        handler, is_builtin = found
        params = rpc_request.params or {}
        logger.debug(f"Handling {method} (id={rpc_request.id})")
        try:
            if is_builtin:
                result = handler(params, call_data)
            else:
                result = handler(params)
        except RequestError as e:
            call_data["error"] = e.reason or "invalid_params"
            if rpc_request.is_notification:
                return None
            return error_response(rpc_request.id, e.code, e.message, e.data)
        except Exception as e:
            logger.error(f"Internal error handling {method}: {e}", exc_info=True)
            self.configuration.report_exception(e, {"request": request})
            raise

        if rpc_request.is_notification:
            return None
        return JSONRPCResponse(id=rpc_request.id, result=result).to_dict()

    def handle_json(self, raw: Union[str, bytes]) -> Optional[str]:
        """Serve one JSON-encoded message; ``None`` when there is no reply."""
        try:
            message = json.loads(raw)
        except ValueError as e:
            logger.warning(f"JSON parse error: {e}")
            return json.dumps(error_response(None, ErrorCode.PARSE_ERROR, "Parse error"))

        response = self.handle(message)
        if response is None:
            return None
        return encode_message(response)

    # -- built-in methods --

    def _initialize(self, params: Dict[str, Any], call_data: Dict[str, Any]) -> Dict[str, Any]:
        requested = params.get("protocolVersion")
        client_info = params.get("clientInfo")
        client_name = client_info.get("name", "?") if isinstance(client_info, dict) else "?"
        logger.info(f"Client initialize: {client_name} protocol={requested}")

        result: Dict[str, Any] = {
            "protocolVersion": negotiate_protocol_version(
                requested, self.configuration.protocol_version
            ),
            "capabilities": self.capabilities,
            "serverInfo": {"name": self.name, "version": self.version},
        }
        if self.instructions:
            result["instructions"] = self.instructions
        return result

    def _initialized(self, params: Dict[str, Any], call_data: Dict[str, Any]) -> None:
        logger.debug("Client completed initialization")

    def _ping(self, params: Dict[str, Any], call_data: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    # -- notifications --

    def notify_tools_list_changed(self):
        self._notify(TOOLS_LIST_CHANGED)

    def notify_prompts_list_changed(self):
        self._notify(PROMPTS_LIST_CHANGED)

    def notify_resources_list_changed(self):
        self._notify(RESOURCES_LIST_CHANGED)

    def _notify(self, method: str):
        if self.transport is None:
            logger.debug(f"No transport attached, dropping {method}")
            return
        notification = JSONRPCNotification(method=method).to_dict()
        try:
            self.transport.broadcast(notification)
        except Exception as e:
            logger.error(f"Failed to broadcast {method}: {e}", exc_info=True)
