"""
Tool registry, the static catalogue the router serves.

Every entry pairs a tool schema with where its backend lives: the Lambda
logical function id used in production and the HTTP path used when the
backends are served locally.  To add a tool, define its schema in
``schemas.py`` and append a descriptor here.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from . import schemas


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: Mapping[str, Any]
    backend_ref: str
    invocation_path: str

    def definition(self) -> dict[str, Any]:
        """The ``tools/list`` entry for this tool (no deployment details)."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": copy.deepcopy(dict(self.input_schema)),
        }


def _descriptor(schema: dict[str, Any], backend_ref: str, invocation_path: str) -> ToolDescriptor:
    return ToolDescriptor(
        name=schema["name"],
        description=schema["description"],
        input_schema=schema["inputSchema"],
        backend_ref=backend_ref,
        invocation_path=invocation_path,
    )


def validate_registry(tools: Iterable[ToolDescriptor]) -> None:
    """Raise ``ValueError`` on duplicate names or dangling ``required`` keys."""
    seen: set[str] = set()
    for tool in tools:
        if not tool.name:
            raise ValueError("tool name must be non-empty")
        if tool.name in seen:
            raise ValueError(f"duplicate tool name: {tool.name}")
        seen.add(tool.name)
        properties = tool.input_schema.get("properties") or {}
        missing = [key for key in tool.input_schema.get("required", []) if key not in properties]
        if missing:
            raise ValueError(f"{tool.name}: required keys not in properties: {', '.join(missing)}")


TOOL_REGISTRY: tuple[ToolDescriptor, ...] = (
    # Text-to-image
    _descriptor(schemas.TXT2IMG_STABLE_DIFFUSION, "ToolTxt2imgStableDiffusionFunction", "/tools/txt2img-stable-diffusion"),
    # Edit tools
    _descriptor(schemas.EDIT_ERASE, "ToolEditEraseFunction", "/tools/edit-erase"),
    _descriptor(schemas.EDIT_INPAINT, "ToolEditInpaintFunction", "/tools/edit-inpaint"),
    _descriptor(schemas.EDIT_OUTPAINT, "ToolEditOutpaintFunction", "/tools/edit-outpaint"),
    _descriptor(schemas.EDIT_SEARCH_AND_REPLACE, "ToolEditSearchAndReplaceFunction", "/tools/edit-search-and-replace"),
    _descriptor(schemas.EDIT_SEARCH_AND_RECOLOR, "ToolEditSearchAndRecolorFunction", "/tools/edit-search-and-recolor"),
    _descriptor(schemas.EDIT_REMOVE_BACKGROUND, "ToolEditRemoveBackgroundFunction", "/tools/edit-remove-background"),
    # Control tools
    _descriptor(schemas.CONTROL_SKETCH, "ToolControlSketchFunction", "/tools/control-sketch"),
    _descriptor(schemas.CONTROL_STRUCTURE, "ToolControlStructureFunction", "/tools/control-structure"),
    _descriptor(schemas.CONTROL_STYLE, "ToolControlStyleFunction", "/tools/control-style"),
    # Style transfer
    _descriptor(schemas.STYLE_TRANSFER, "ToolStyleTransferFunction", "/tools/style-transfer"),
)

validate_registry(TOOL_REGISTRY)


def get_tool_by_name(name: str, tools: Iterable[ToolDescriptor] = TOOL_REGISTRY) -> ToolDescriptor | None:
    for tool in tools:
        if tool.name == name:
            return tool
    return None


def get_tool_by_path(path: str, tools: Iterable[ToolDescriptor] = TOOL_REGISTRY) -> ToolDescriptor | None:
    normalized = "/" + path.strip("/")
    for tool in tools:
        if tool.invocation_path == normalized:
            return tool
    return None


def tool_definitions(tools: Iterable[ToolDescriptor] = TOOL_REGISTRY) -> list[dict[str, Any]]:
    return [tool.definition() for tool in tools]
