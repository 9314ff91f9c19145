"""Protocol version negotiation and advertised server capabilities."""
from typing import Any, Dict, Optional, Sized

from .configuration import SUPPORTED_PROTOCOL_VERSIONS


def negotiate_protocol_version(requested: Optional[str], default: str) -> str:
    """Pick the version to answer ``initialize`` with.

    The client's version is echoed when supported; otherwise the server
    answers with its configured version and the client decides whether to
    continue.
    """
    if requested in SUPPORTED_PROTOCOL_VERSIONS:
        return requested
    return default


def build_capabilities(
    tools: Sized,
    prompts: Sized,
    resources: Sized,
    resource_templates: Sized = (),
) -> Dict[str, Any]:
    """Capability object for the registries that currently hold entries.

    Each advertised block carries ``listChanged`` since the server can emit
    the matching ``notifications/*/list_changed``.
    """
    capabilities: Dict[str, Any] = {}
    if len(tools):
        capabilities["tools"] = {"listChanged": True}
    if len(prompts):
        capabilities["prompts"] = {"listChanged": True}
    if len(resources) or len(resource_templates):
        capabilities["resources"] = {"listChanged": True}
    return capabilities
