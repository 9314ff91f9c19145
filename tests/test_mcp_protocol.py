"""Unit tests for MCP method dispatch."""
import json

import pytest

from mcp_endpoint import (
    DuplicateEntryError,
    MCPServer,
    MethodAlreadyDefinedError,
    PromptArgument,
    PromptMessage,
    PromptResult,
    Resource,
    ResourceTemplate,
    TextResourceContents,
    ToolAnnotations,
    define_prompt,
    define_tool,
    tool,
)
from mcp_endpoint.jsonrpc import ErrorCode
from conftest import prompts_get, tools_call


@pytest.fixture
def events():
    return {"instrumentation": [], "exceptions": []}


@pytest.fixture
def server(events, simple_tool, greeting_prompt):
    server = MCPServer(
        name="test_server",
        version="1.2.3",
        tools=[simple_tool],
        prompts=[greeting_prompt],
        resources=[
            Resource(uri="file:///readme.md", name="readme", mime_type="text/markdown")
        ],
        resource_templates=[
            ResourceTemplate(uri_template="file:///{path}", name="files", mime_type="text/plain")
        ],
    )
    server.configuration.instrumentation_callback = events["instrumentation"].append
    server.configuration.exception_reporter = (
        lambda e, ctx: events["exceptions"].append((e, ctx))
    )
    return server


def request(method, params=None, request_id=1):
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


class TestEnvelope:
    """Envelope validation and method lookup."""

    def test_wrong_jsonrpc_version(self, server, events):
        response = server.handle({"jsonrpc": "1.0", "id": 7, "method": "ping"})

        assert response["id"] == 7
        assert response["error"]["code"] == ErrorCode.INVALID_REQUEST
        assert "result" not in response
        assert events["exceptions"] == []

    def test_empty_method(self, server):
        response = server.handle({"jsonrpc": "2.0", "id": 1, "method": ""})

        assert response["error"]["code"] == ErrorCode.INVALID_REQUEST

    def test_not_an_object(self, server):
        response = server.handle(["not", "an", "object"])

        assert response["id"] is None
        assert response["error"]["code"] == ErrorCode.INVALID_REQUEST

    def test_unknown_method(self, server, events):
        response = server.handle(request("does/not/exist"))

        assert response["error"]["code"] == ErrorCode.METHOD_NOT_FOUND
        assert "does/not/exist" in response["error"]["message"]
        assert events["instrumentation"][0]["error"] == "method_not_found"
        assert events["exceptions"] == []

    def test_unimplemented_protocol_features_are_unknown(self, server):
        for method in ("resources/subscribe", "logging/setLevel", "completion/complete"):
            response = server.handle(request(method, {}))
            assert response["error"]["code"] == ErrorCode.METHOD_NOT_FOUND

    def test_notification_gets_no_response(self, server, events):
        assert server.handle({"jsonrpc": "2.0", "method": "ping"}) is None
        assert events["instrumentation"][0]["method"] == "ping"

    def test_handle_json_round_trip(self, server):
        raw = server.handle_json('{"jsonrpc": "2.0", "id": "a", "method": "ping"}')

        assert raw == '{"jsonrpc": "2.0", "id": "a", "result": {}}'

    def test_handle_json_parse_error(self, server):
        response = json.loads(server.handle_json("{not json"))

        assert response["id"] is None
        assert response["error"]["code"] == ErrorCode.PARSE_ERROR

    def test_handle_json_notification(self, server):
        assert server.handle_json('{"jsonrpc": "2.0", "method": "notifications/initialized"}') is None


class TestInitialize:
    """Version negotiation and capabilities."""

    def test_echoes_supported_version(self, server):
        response = server.handle(request("initialize", {"protocolVersion": "2024-11-05"}))

        result = response["result"]
        assert result["protocolVersion"] == "2024-11-05"
        assert result["serverInfo"] == {"name": "test_server", "version": "1.2.3"}

    def test_falls_back_to_server_version(self, server):
        response = server.handle(request("initialize", {"protocolVersion": "1999-01-01"}))

        assert response["result"]["protocolVersion"] == server.configuration.protocol_version

    def test_missing_version_uses_server_version(self, server):
        response = server.handle(request("initialize", {}))

        assert response["result"]["protocolVersion"] == "2025-06-18"

    def test_capabilities_follow_registries(self, server):
        capabilities = server.handle(request("initialize", {}))["result"]["capabilities"]

        assert capabilities == {
            "tools": {"listChanged": True},
            "prompts": {"listChanged": True},
            "resources": {"listChanged": True},
        }

    def test_empty_server_advertises_nothing(self):
        response = MCPServer().handle(request("initialize", {}))

        assert response["result"]["capabilities"] == {}

    def test_runtime_registration_is_advertised(self):
        server = MCPServer()
        server.define_tool("late", lambda: "ok")

        capabilities = server.handle(request("initialize", {}))["result"]["capabilities"]

        assert capabilities == {"tools": {"listChanged": True}}

    def test_instructions(self):
        server = MCPServer(instructions="Use the tools wisely")

        result = server.handle(request("initialize", {}))["result"]

        assert result["instructions"] == "Use the tools wisely"

    def test_ping(self, server):
        assert server.handle(request("ping"))["result"] == {}


class TestTools:
    """tools/list and tools/call."""

    def test_list(self, server):
        result = server.handle(request("tools/list"))["result"]

        assert result == {
            "tools": [
                {
                    "name": "simple_without_context",
                    "description": "A tool that doesn't use server_context",
                    "inputSchema": {
                        "type": "object",
                        "properties": {"message": {"type": "string"}},
                        "required": ["message"],
                    },
                }
            ]
        }

    def test_list_is_idempotent(self, server):
        server.define_tool("second", lambda: "2")

        first = server.handle(request("tools/list"))
        second = server.handle(request("tools/list"))

        assert first == second
        assert [t["name"] for t in first["result"]["tools"]] == [
            "simple_without_context",
            "second",
        ]

    def test_annotations_are_camel_case(self):
        server = MCPServer()
        server.define_tool(
            "delete_everything",
            lambda: "gone",
            annotations={"title": "Delete", "destructive_hint": True, "read_only_hint": False},
        )

        listed = server.handle(request("tools/list"))["result"]["tools"][0]

        assert listed["annotations"] == {
            "title": "Delete",
            "readOnlyHint": False,
            "destructiveHint": True,
        }

    def test_call(self, server, events):
        response = server.handle(tools_call("simple_without_context", {"message": "hi"}))

        assert response["result"] == {
            "content": [{"type": "text", "text": "SimpleToolWithoutContext: hi"}]
        }
        data = events["instrumentation"][0]
        assert data["method"] == "tools/call"
        assert data["tool_name"] == "simple_without_context"
        assert "error" not in data
        assert data["duration"] >= 0

    def test_call_unknown_tool(self, server, events):
        response = server.handle(tools_call("missing"))

        assert response["error"]["code"] == ErrorCode.INVALID_PARAMS
        data = events["instrumentation"][0]
        assert data["method"] == "tools/call"
        assert data["error"] == "tool_not_found"
        assert "tool_name" not in data
        assert events["exceptions"] == []

    def test_call_missing_required_argument(self, server, events):
        response = server.handle(tools_call("simple_without_context", {}))

        assert response["error"]["code"] == ErrorCode.INVALID_PARAMS
        assert "message" in response["error"]["message"]
        assert events["instrumentation"][0]["error"] == "missing_required_arguments"
        assert events["exceptions"] == []

    def test_call_non_object_arguments(self, server):
        response = server.handle(
            request("tools/call", {"name": "simple_without_context", "arguments": [1, 2]})
        )

        assert response["error"]["code"] == ErrorCode.INVALID_PARAMS

    def test_failing_tool_is_absorbed(self, server, events):
        def explode(**kwargs):
            raise RuntimeError("boom")

        server.define_tool("explode", explode)

        response = server.handle(tools_call("explode", {"x": 1}))

        assert response["result"] == {
            "content": [{"type": "text", "text": "Internal error occurred"}],
            "isError": True,
        }
        error, context = events["exceptions"][0]
        assert isinstance(error, RuntimeError)
        assert context == {"tool_name": "explode", "arguments": {"x": 1}}
        assert events["instrumentation"][0]["tool_name"] == "explode"

    def test_plain_return_values_become_text(self):
        server = MCPServer()
        server.define_tool("answer", lambda: 42)

        response = server.handle(tools_call("answer"))

        assert response["result"]["content"] == [{"type": "text", "text": "42"}]

    def test_decorator_builds_same_record(self):
        @tool(annotations=ToolAnnotations(read_only_hint=True))
        def echo(message):
            """Echo the message back."""
            return message

        built = define_tool(
            "echo",
            echo.call,
            description="Echo the message back.",
            annotations=ToolAnnotations(read_only_hint=True),
        )

        assert echo == built

    def test_duplicate_tool_name(self, server):
        with pytest.raises(DuplicateEntryError):
            server.define_tool("simple_without_context", lambda: "again")
        assert len(server.tools) == 1


class TestPrompts:
    """prompts/list and prompts/get."""

    def test_list(self, server):
        result = server.handle(request("prompts/list"))["result"]

        assert result == {
            "prompts": [
                {
                    "name": "greeting",
                    "description": "Greets someone",
                    "arguments": [
                        {"name": "name", "description": "Who to greet", "required": True}
                    ],
                }
            ]
        }

    def test_get(self, server, events):
        response = server.handle(prompts_get("greeting", {"name": "Ada"}))

        assert response["result"] == {
            "messages": [
                {"role": "user", "content": {"type": "text", "text": "Hello Ada, from stranger"}}
            ]
        }
        assert events["instrumentation"][0]["prompt_name"] == "greeting"

    def test_get_unknown(self, server, events):
        response = server.handle(prompts_get("nope"))

        assert response["error"]["code"] == ErrorCode.INVALID_PARAMS
        assert events["instrumentation"][0]["error"] == "prompt_not_found"
        assert events["exceptions"] == []

    def test_get_missing_required_argument(self, server, events):
        response = server.handle(prompts_get("greeting", {}))

        assert response["error"]["code"] == ErrorCode.INVALID_PARAMS
        assert events["instrumentation"][0]["error"] == "missing_required_arguments"
        assert events["exceptions"] == []

    def test_failing_template_is_absorbed(self, server, events):
        def template(args):
            raise ValueError("bad template")

        server.define_prompt(
            "broken", template, arguments=[PromptArgument(name="x")]
        )

        response = server.handle(prompts_get("broken", {"x": "1"}))

        assert response["result"]["isError"] is True
        assert events["exceptions"][0][1] == {"prompt_name": "broken", "arguments": {"x": "1"}}

    def test_result_description(self):
        prompt = define_prompt(
            "described",
            lambda args: PromptResult(
                description="A description",
                messages=[PromptMessage.text("assistant", "hi")],
            ),
        )
        server = MCPServer(prompts=[prompt])

        result = server.handle(prompts_get("described"))["result"]

        assert result["description"] == "A description"
        assert result["messages"][0]["role"] == "assistant"


class TestResources:
    """resources/list, resources/read and resources/templates/list."""

    def test_list(self, server):
        result = server.handle(request("resources/list"))["result"]

        assert result == {
            "resources": [
                {"uri": "file:///readme.md", "name": "readme", "mimeType": "text/markdown"}
            ]
        }

    def test_templates_list(self, server):
        result = server.handle(request("resources/templates/list"))["result"]

        assert result == {
            "resourceTemplates": [
                {"uriTemplate": "file:///{path}", "name": "files", "mimeType": "text/plain"}
            ]
        }

    def test_read_without_handler(self, server, events):
        response = server.handle(request("resources/read", {"uri": "file:///readme.md"}))

        assert response["result"] == {"contents": []}
        assert "error" not in response
        assert events["instrumentation"][0]["resource_uri"] == "file:///readme.md"

    def test_read_with_handler(self, server):
        @server.resources_read_handler
        def read(params):
            return [
                TextResourceContents(uri=params["uri"], mime_type="text/markdown", text="# Hi"),
                {"uri": params["uri"], "mimeType": "application/octet-stream", "blob": "AAE="},
            ]

        response = server.handle(request("resources/read", {"uri": "file:///readme.md"}))

        assert response["result"]["contents"] == [
            {"uri": "file:///readme.md", "mimeType": "text/markdown", "text": "# Hi"},
            {"uri": "file:///readme.md", "mimeType": "application/octet-stream", "blob": "AAE="},
        ]

    def test_read_handler_failure_propagates(self, server, events):
        def read(params):
            raise OSError("disk gone")

        server.resources_read_handler(read)
        message = request("resources/read", {"uri": "file:///readme.md"})

        with pytest.raises(OSError):
            server.handle(message)

        assert events["exceptions"][0][1] == {"request": message}
        assert events["instrumentation"][0]["resource_uri"] == "file:///readme.md"

    def test_unregistered_uri_is_not_instrumented(self, server, events):
        server.resources_read_handler(
            lambda params: [TextResourceContents(uri=params["uri"], text="body")]
        )

        response = server.handle(request("resources/read", {"uri": "file:///notes/today.txt"}))

        assert response["result"]["contents"][0]["text"] == "body"
        assert "resource_uri" not in events["instrumentation"][0]

    def test_duplicate_uri(self, server):
        with pytest.raises(DuplicateEntryError):
            server.add_resource(
                Resource(uri="file:///readme.md", name="other", mime_type="text/plain")
            )


class TestCustomMethods:
    """Caller-defined methods."""

    def test_custom_method(self, server, events):
        server.define_custom_method("math/add", lambda params: params["a"] + params["b"])

        response = server.handle(request("math/add", {"a": 1, "b": 2}))

        assert response["result"] == 3
        assert events["instrumentation"][0]["method"] == "math/add"

    def test_builtin_name_rejected(self, server):
        with pytest.raises(MethodAlreadyDefinedError):
            server.define_custom_method("ping", lambda params: "pong")

        assert server.handle(request("ping"))["result"] == {}

    def test_duplicate_custom_name_rejected(self, server):
        server.define_custom_method("custom", lambda params: 1)

        with pytest.raises(MethodAlreadyDefinedError):
            server.define_custom_method("custom", lambda params: 2)

        assert server.handle(request("custom"))["result"] == 1

    def test_none_result_with_id(self, server):
        server.define_custom_method("fire", lambda params: None)

        response = server.handle(request("fire"))

        assert "result" in response
        assert response["result"] is None

    def test_none_result_without_id(self, server):
        calls = []
        server.define_custom_method("fire", calls.append)

        assert server.handle({"jsonrpc": "2.0", "method": "fire", "params": {"n": 1}}) is None
        assert calls == [{"n": 1}]

    def test_failure_is_reported_and_propagated(self, server, events):
        def fail(params):
            raise KeyError("missing")

        server.define_custom_method("fail", fail)
        message = request("fail", {})

        with pytest.raises(KeyError):
            server.handle(message)

        assert events["exceptions"][0][1] == {"request": message}
        assert "error" not in events["instrumentation"][0]
        assert events["instrumentation"][0]["duration"] >= 0

    def test_unencodable_result_becomes_internal_error(self, server):
        server.define_custom_method("numbers", lambda params: {1, 2})

        raw = server.handle_json(json.dumps(request("numbers", request_id=4)))

        assert json.loads(raw) == {
            "jsonrpc": "2.0",
            "id": 4,
            "error": {"code": -32603, "message": "Internal error"},
        }


class TestFailingCallbacks:
    """A raising reporter or instrumentation callback never changes the outcome."""

    @pytest.fixture
    def server(self, simple_tool, greeting_prompt):
        server = MCPServer(tools=[simple_tool], prompts=[greeting_prompt])

        def reporter(exception, context):
            raise ConnectionError("reporter down")

        def instrument(data):
            raise ConnectionError("metrics down")

        server.configuration.exception_reporter = reporter
        server.configuration.instrumentation_callback = instrument
        return server

    def test_successful_request(self, server):
        assert server.handle(request("ping")) == {"jsonrpc": "2.0", "id": 1, "result": {}}

    def test_failing_tool_still_absorbed(self, server):
        def explode():
            raise RuntimeError("tool broke")

        server.define_tool("explode", explode)

        result = server.handle(tools_call("explode"))["result"]

        assert result["isError"] is True
        assert result["content"] == [{"type": "text", "text": "Internal error occurred"}]

    def test_failing_prompt_still_absorbed(self, server):
        def template(args):
            raise RuntimeError("template broke")

        server.define_prompt("broken", template)

        assert server.handle(prompts_get("broken"))["result"]["isError"] is True

    def test_handler_failure_still_propagates(self, server):
        def fail(params):
            raise KeyError("missing")

        server.define_custom_method("fail", fail)

        with pytest.raises(KeyError):
            server.handle(request("fail"))

    def test_lookup_failure_still_answered(self, server):
        response = server.handle(tools_call("nope"))

        assert response["error"]["code"] == ErrorCode.INVALID_PARAMS
