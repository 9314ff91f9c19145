"""Shared fixtures for the MCP endpoint tests."""
import pytest

from mcp_endpoint import (
    PromptArgument,
    PromptMessage,
    PromptResult,
    ToolResponse,
    define_prompt,
    define_tool,
    reset_configuration,
)
from mcp_endpoint.content import text_content

MESSAGE_SCHEMA = {
    "type": "object",
    "properties": {"message": {"type": "string"}},
    "required": ["message"],
}


@pytest.fixture(autouse=True)
def fresh_default_configuration():
    """Every test starts from a new process-wide configuration."""
    reset_configuration()
    yield
    reset_configuration()


def simple_without_context(message):
    return ToolResponse(content=[text_content(f"SimpleToolWithoutContext: {message}")])


def tool_with_optional_context(message, server_context=None):
    context_info = (
        f"with context: {server_context['user']}" if server_context else "no context"
    )
    return ToolResponse(
        content=[text_content(f"ToolWithOptionalContext: {message} ({context_info})")]
    )


def tool_with_required_context(message, *, server_context):
    return ToolResponse(
        content=[
            text_content(
                f"ToolWithRequiredContext: {message} for user {server_context['user']}"
            )
        ]
    )


def flexible_tool(**kwargs):
    context = kwargs.get("server_context")
    return ToolResponse(
        content=[
            text_content(
                f"FlexibleTool: {kwargs['message']} "
                f"(context: {'present' if context else 'absent'})"
            )
        ]
    )


@pytest.fixture
def simple_tool():
    return define_tool(
        name="simple_without_context",
        description="A tool that doesn't use server_context",
        input_schema=MESSAGE_SCHEMA,
        call=simple_without_context,
    )


@pytest.fixture
def optional_context_tool():
    return define_tool(
        name="tool_with_optional_context",
        description="A tool with optional server_context",
        input_schema=MESSAGE_SCHEMA,
        call=tool_with_optional_context,
    )


@pytest.fixture
def required_context_tool():
    return define_tool(
        name="tool_with_required_context",
        description="A tool that requires server_context",
        input_schema=MESSAGE_SCHEMA,
        call=tool_with_required_context,
    )


@pytest.fixture
def variadic_tool():
    return define_tool(name="flexible_tool", call=flexible_tool)


def _prompt_result(text):
    return PromptResult(messages=[PromptMessage.text("user", text)])


@pytest.fixture
def greeting_prompt():
    def template(args, server_context=None):
        who = server_context["user"] if server_context else "stranger"
        return _prompt_result(f"Hello {args['name']}, from {who}")

    return define_prompt(
        name="greeting",
        description="Greets someone",
        arguments=[PromptArgument(name="name", description="Who to greet", required=True)],
        template=template,
    )


def tools_call(name, arguments=None, request_id=1):
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments or {}},
    }


def prompts_get(name, arguments=None, request_id=1):
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "prompts/get",
        "params": {"name": name, "arguments": arguments or {}},
    }
