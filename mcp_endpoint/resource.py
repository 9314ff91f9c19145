"""Resource and resource template descriptions."""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional


class Resource(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    uri: str
    name: str
    description: Optional[str] = None
    mime_type: str = Field(alias="mimeType")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ResourceTemplate(BaseModel):
    """A parameterised resource address; reads go through the read handler."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    uri_template: str = Field(alias="uriTemplate")
    name: str
    description: Optional[str] = None
    mime_type: str = Field(alias="mimeType")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TextResourceContents(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uri: str
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    text: str


class BlobResourceContents(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uri: str
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    blob: str


def dump_contents(item: Any) -> Any:
    if isinstance(item, BaseModel):
        return item.model_dump(by_alias=True, exclude_none=True)
    return item
