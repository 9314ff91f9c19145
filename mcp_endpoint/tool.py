"""Tool records and the two ways of building them.

``define_tool(...)`` takes the callable as an argument; ``@tool(...)`` wraps a
function. Both return the same :class:`Tool` record.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .content import dump_content, text_content
from .context import ContextMode, invoke_with_context

INTERNAL_ERROR_MESSAGE = "Internal error occurred"


def _default_input_schema() -> Dict[str, Any]:
    return {"type": "object", "properties": {}}


class ToolAnnotations(BaseModel):
    """Behavioural hints about a tool; serialised in camelCase."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: Optional[str] = None
    read_only_hint: Optional[bool] = Field(default=None, alias="readOnlyHint")
    destructive_hint: Optional[bool] = Field(default=None, alias="destructiveHint")
    idempotent_hint: Optional[bool] = Field(default=None, alias="idempotentHint")
    open_world_hint: Optional[bool] = Field(default=None, alias="openWorldHint")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ToolResponse(BaseModel):
    """Result of a tool call."""

    content: List[Any] = Field(default_factory=list)
    is_error: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"content": [dump_content(c) for c in self.content]}
        if self.is_error:
            result["isError"] = True
        return result

    @classmethod
    def internal_error(cls) -> "ToolResponse":
        """Generic failure result; details stay with the exception reporter."""
        return cls(content=[text_content(INTERNAL_ERROR_MESSAGE)], is_error=True)


@dataclass(frozen=True)
class Tool:
    name: str
    call: Callable[..., Any]
    description: Optional[str] = None
    input_schema: Dict[str, Any] = field(default_factory=_default_input_schema)
    annotations: Optional[ToolAnnotations] = None
    context_mode: ContextMode = ContextMode.NONE

    def to_dict(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {"name": self.name}
        if self.description is not None:
            entry["description"] = self.description
        entry["inputSchema"] = self.input_schema
        if self.annotations is not None:
            entry["annotations"] = self.annotations.to_dict()
        return entry

    def missing_required_arguments(self, arguments: Mapping[str, Any]) -> List[str]:
        required = self.input_schema.get("required") or []
        return [name for name in required if name not in arguments]

    def invoke(
        self,
        arguments: Mapping[str, Any],
        server_context: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Run the tool and serialise what it returned."""
        value = invoke_with_context(
            self.call,
            self.context_mode,
            server_context,
            self.name,
            kwargs=arguments,
        )
        return _tool_result(value)


def _tool_result(value: Any) -> Dict[str, Any]:
    if isinstance(value, ToolResponse):
        return value.to_dict()
    if isinstance(value, Mapping):
        return dict(value)
    return ToolResponse(content=[text_content(str(value))]).to_dict()


def _annotations(
    annotations: Union[ToolAnnotations, Mapping[str, Any], None]
) -> Optional[ToolAnnotations]:
    if annotations is None or isinstance(annotations, ToolAnnotations):
        return annotations
    return ToolAnnotations.model_validate(dict(annotations))


def define_tool(
    name: str,
    call: Callable[..., Any],
    description: Optional[str] = None,
    input_schema: Optional[Dict[str, Any]] = None,
    annotations: Union[ToolAnnotations, Mapping[str, Any], None] = None,
    context: Optional[ContextMode] = None,
) -> Tool:
    """Build a tool record.

    Args:
        name: Unique tool name
        call: Callable receiving the decoded arguments as keyword arguments
        description: Human readable description
        input_schema: JSON Schema object for the arguments
        annotations: ``ToolAnnotations`` or a mapping of its fields
        context: How ``call`` takes ``server_context``; derived from its
            signature when omitted
    """
    return Tool(
        name=name,
        call=call,
        description=description,
        input_schema=input_schema if input_schema is not None else _default_input_schema(),
        annotations=_annotations(annotations),
        context_mode=context if context is not None else ContextMode.of(call),
    )


def tool(
    name: Optional[str] = None,
    description: Optional[str] = None,
    input_schema: Optional[Dict[str, Any]] = None,
    annotations: Union[ToolAnnotations, Mapping[str, Any], None] = None,
    context: Optional[ContextMode] = None,
) -> Callable[[Callable[..., Any]], Tool]:
    """Decorator form of :func:`define_tool`.

    The function name is used when ``name`` is omitted and the first line of
    its docstring when ``description`` is.

        @tool(input_schema={"type": "object", "properties": {"city": {"type": "string"}}})
        def weather(city, server_context=None):
            return f"Sunny in {city}"
    """

    def decorator(fn: Callable[..., Any]) -> Tool:
        doc = (fn.__doc__ or "").strip().splitlines()
        return define_tool(
            name=name or fn.__name__,
            call=fn,
            description=description if description is not None else (doc[0] if doc else None),
            input_schema=input_schema,
            annotations=annotations,
            context=context,
        )

    return decorator
