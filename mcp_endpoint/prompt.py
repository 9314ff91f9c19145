"""Prompt records, their arguments and results."""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field

from .content import TextContent, dump_content
from .context import ContextMode, invoke_with_context


class PromptArgument(BaseModel):
    name: str
    description: Optional[str] = None
    required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class PromptMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: Any

    @classmethod
    def text(cls, role: str, text: str) -> "PromptMessage":
        return cls(role=role, content=TextContent(text=text))

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": dump_content(self.content)}


class PromptResult(BaseModel):
    description: Optional[str] = None
    messages: List[PromptMessage] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.description is not None:
            result["description"] = self.description
        result["messages"] = [m.to_dict() for m in self.messages]
        return result


@dataclass(frozen=True)
class Prompt:
    name: str
    template: Callable[..., Any]
    description: Optional[str] = None
    arguments: Tuple[PromptArgument, ...] = ()
    context_mode: ContextMode = ContextMode.NONE

    def to_dict(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {"name": self.name}
        if self.description is not None:
            entry["description"] = self.description
        entry["arguments"] = [a.to_dict() for a in self.arguments]
        return entry

    def missing_required_arguments(self, arguments: Mapping[str, Any]) -> List[str]:
        return [a.name for a in self.arguments if a.required and a.name not in arguments]

    def render(
        self,
        arguments: Mapping[str, Any],
        server_context: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Run the template with the argument mapping and serialise the result."""
        value = invoke_with_context(
            self.template,
            self.context_mode,
            server_context,
            self.name,
            args=(dict(arguments),),
        )
        if isinstance(value, PromptResult):
            return value.to_dict()
        if isinstance(value, Mapping):
            return dict(value)
        raise TypeError(
            f"Prompt {self.name} returned {type(value).__name__}, expected PromptResult"
        )


def _arguments(
    arguments: Optional[Iterable[Union[PromptArgument, Mapping[str, Any]]]]
) -> Tuple[PromptArgument, ...]:
    return tuple(
        a if isinstance(a, PromptArgument) else PromptArgument.model_validate(dict(a))
        for a in (arguments or ())
    )


def define_prompt(
    name: str,
    template: Callable[..., Any],
    description: Optional[str] = None,
    arguments: Optional[Iterable[Union[PromptArgument, Mapping[str, Any]]]] = None,
    context: Optional[ContextMode] = None,
) -> Prompt:
    """Build a prompt record.

    ``template`` receives the argument mapping as its single positional
    argument, plus ``server_context`` as ``context`` (or its signature)
    dictates.
    """
    return Prompt(
        name=name,
        template=template,
        description=description,
        arguments=_arguments(arguments),
        context_mode=context if context is not None else ContextMode.of(template),
    )


def prompt(
    name: Optional[str] = None,
    description: Optional[str] = None,
    arguments: Optional[Iterable[Union[PromptArgument, Mapping[str, Any]]]] = None,
    context: Optional[ContextMode] = None,
) -> Callable[[Callable[..., Any]], Prompt]:
    """Decorator form of :func:`define_prompt`."""

    def decorator(fn: Callable[..., Any]) -> Prompt:
        doc = (fn.__doc__ or "").strip().splitlines()
        return define_prompt(
            name=name or fn.__name__,
            template=fn,
            description=description if description is not None else (doc[0] if doc else None),
            arguments=arguments,
            context=context,
        )

    return decorator
