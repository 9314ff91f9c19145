"""MCP protocol endpoint: tools, prompts and resources over JSON-RPC 2.0."""
__version__ = "0.1.0"

from .configuration import (
    Configuration,
    SUPPORTED_PROTOCOL_VERSIONS,
    LATEST_PROTOCOL_VERSION,
    configure,
    get_configuration,
    reset_configuration,
)
from .content import TextContent, ImageContent, AudioContent
from .context import ContextMode
from .mcp_server import MCPServer
from .prompt import Prompt, PromptArgument, PromptMessage, PromptResult, define_prompt, prompt
from .resource import Resource, ResourceTemplate, TextResourceContents, BlobResourceContents
from .stdio_transport import StdioTransport
from .tool import Tool, ToolAnnotations, ToolResponse, define_tool, tool
from .utils.errors import (
    MCPError,
    MethodAlreadyDefinedError,
    DuplicateEntryError,
    UnsupportedProtocolVersionError,
    MissingServerContextError,
)

__all__ = [
    "Configuration",
    "SUPPORTED_PROTOCOL_VERSIONS",
    "LATEST_PROTOCOL_VERSION",
    "configure",
    "get_configuration",
    "reset_configuration",
    "TextContent",
    "ImageContent",
    "AudioContent",
    "ContextMode",
    "MCPServer",
    "Prompt",
    "PromptArgument",
    "PromptMessage",
    "PromptResult",
    "define_prompt",
    "prompt",
    "Resource",
    "ResourceTemplate",
    "TextResourceContents",
    "BlobResourceContents",
    "StdioTransport",
    "Tool",
    "ToolAnnotations",
    "ToolResponse",
    "define_tool",
    "tool",
    "MCPError",
    "MethodAlreadyDefinedError",
    "DuplicateEntryError",
    "UnsupportedProtocolVersionError",
    "MissingServerContextError",
]
