"""MCP registries and the tool, prompt and resource method handlers."""
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional
import logging

from .configuration import Configuration
from .jsonrpc.models import ErrorCode
from .prompt import Prompt
from .registry import Registry
from .resource import Resource, ResourceTemplate, dump_contents
from .tool import Tool, ToolResponse
from .utils.errors import RequestError

logger = logging.getLogger(__name__)

ResourcesReadHandler = Callable[[Dict[str, Any]], Iterable[Any]]


def _arguments(params: Mapping[str, Any]) -> Dict[str, Any]:
    arguments = params.get("arguments")
    if arguments is None:
        return {}
    if not isinstance(arguments, Mapping):
        raise RequestError(
            ErrorCode.INVALID_PARAMS,
            "Arguments must be an object",
            reason="invalid_arguments",
        )
    return dict(arguments)


class MCPHandler:
    """Holds the registries and serves the methods that consult them.

    Handlers take ``(params, call_data)``; ``call_data`` is the
    instrumentation payload for the current call and handlers add the entity
    they resolved to it.
    """

    def __init__(
        self,
        configuration: Configuration,
        server_context: Optional[Mapping[str, Any]] = None,
    ):
        self.configuration = configuration
        self.server_context = server_context
        self.tools: Registry[Tool] = Registry("tool", lambda t: t.name)
        self.prompts: Registry[Prompt] = Registry("prompt", lambda p: p.name)
        self.resources: Registry[Resource] = Registry("resource", lambda r: r.uri)
        self.resource_templates: Registry[ResourceTemplate] = Registry(
            "resource template", lambda r: r.uri_template
        )
        self.resources_read_handler: Optional[ResourcesReadHandler] = None

    def list_tools(self, params: Dict[str, Any], call_data: Dict[str, Any]) -> Dict[str, Any]:
        return {"tools": [t.to_dict() for t in self.tools]}

    def call_tool(self, params: Dict[str, Any], call_data: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a registered tool.

        Lookup and argument problems become ``INVALID_PARAMS``. Anything the
        tool raises is reported and answered with an ``isError`` result.
        """
        name = params.get("name")
        tool = self.tools.get(name)
        if tool is None:
            raise RequestError(
                ErrorCode.INVALID_PARAMS,
                f"Tool not found: {name}",
                reason="tool_not_found",
            )
        call_data["tool_name"] = tool.name

        arguments = _arguments(params)
        missing = tool.missing_required_arguments(arguments)
        if missing:
            raise RequestError(
                ErrorCode.INVALID_PARAMS,
                f"Missing required arguments: {', '.join(missing)}",
                reason="missing_required_arguments",
            )

        try:
            return tool.invoke(arguments, self.server_context)
        except Exception as e:
            logger.error(f"Tool {tool.name} failed: {e}", exc_info=True)
            self.configuration.report_exception(
                e, {"tool_name": tool.name, "arguments": arguments}
            )
            return ToolResponse.internal_error().to_dict()

    def list_prompts(self, params: Dict[str, Any], call_data: Dict[str, Any]) -> Dict[str, Any]:
        return {"prompts": [p.to_dict() for p in self.prompts]}

    def get_prompt(self, params: Dict[str, Any], call_data: Dict[str, Any]) -> Dict[str, Any]:
        """Render a registered prompt, with the same failure policy as tools."""
        name = params.get("name")
        prompt = self.prompts.get(name)
        if prompt is None:
            raise RequestError(
                ErrorCode.INVALID_PARAMS,
                f"Prompt not found: {name}",
                reason="prompt_not_found",
            )
        call_data["prompt_name"] = prompt.name

        arguments = _arguments(params)
        missing = prompt.missing_required_arguments(arguments)
        if missing:
            raise RequestError(
                ErrorCode.INVALID_PARAMS,
                f"Missing required arguments: {', '.join(missing)}",
                reason="missing_required_arguments",
            )

        try:
            return prompt.render(arguments, self.server_context)
        except Exception as e:
            logger.error(f"Prompt {prompt.name} failed: {e}", exc_info=True)
            self.configuration.report_exception(
                e, {"prompt_name": prompt.name, "arguments": arguments}
            )
            return ToolResponse.internal_error().to_dict()

    def list_resources(self, params: Dict[str, Any], call_data: Dict[str, Any]) -> Dict[str, Any]:
        return {"resources": [r.to_dict() for r in self.resources]}

    def read_resource(self, params: Dict[str, Any], call_data: Dict[str, Any]) -> Dict[str, Any]:
        """Delegate to the read handler; without one there is nothing to read.

        Only URIs of registered resources are recorded for instrumentation.
        """
        uri = params.get("uri")
        if self.resources.get(uri) is not None:
            call_data["resource_uri"] = uri
        if self.resources_read_handler is None:
            logger.debug(f"No resources/read handler configured, ignoring {uri}")
            return {"contents": []}
        contents: List[Any] = [
            dump_contents(item) for item in self.resources_read_handler(params) or ()
        ]
        return {"contents": contents}

    def list_resource_templates(
        self, params: Dict[str, Any], call_data: Dict[str, Any]
    ) -> Dict[str, Any]:
        return {"resourceTemplates": [t.to_dict() for t in self.resource_templates]}
