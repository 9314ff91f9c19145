"""Content blocks returned by tools and prompts."""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Literal


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageContent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["image"] = "image"
    data: str
    mime_type: str = Field(alias="mimeType")


class AudioContent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["audio"] = "audio"
    data: str
    mime_type: str = Field(alias="mimeType")


def dump_content(block: Any) -> Any:
    """Serialise a content block; plain mappings pass through untouched."""
    if isinstance(block, BaseModel):
        return block.model_dump(by_alias=True, exclude_none=True)
    return block


def text_content(text: str) -> Dict[str, Any]:
    """Build a text content block."""
    return TextContent(text=text).model_dump()
