"""Tool-to-control mapping documents.

One JSON document per tool: ``toolId``, ``toolName``, ``vendor``,
``category`` and a ``controlMappings`` list. Control IDs are normalized on
load so they compare exactly against catalog IDs.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Sequence

from pydantic import ValidationError

from ..catalog.ids import normalize_control_id
from ..errors import ToolMappingError
from ..models.tools import ToolCategory, ToolControlMapping

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("toolId", "toolName", "category")


def parse_tool_mapping(data: object, source: str = "<memory>") -> ToolControlMapping:
    """Validate a raw mapping document and normalize its control IDs."""
    if not isinstance(data, dict):
        raise ToolMappingError(f"Invalid tool mapping format in {source}: expected an object")

    missing = [key for key in REQUIRED_FIELDS if not data.get(key)]
    if data.get("controlMappings") is None:
        missing.append("controlMappings")
    if missing:
        raise ToolMappingError(
            f"Invalid tool mapping format in {source}: missing {', '.join(missing)}"
        )

    try:
        mapping = ToolControlMapping.model_validate(data)
    except ValidationError as e:
        raise ToolMappingError(f"Invalid tool mapping format in {source}: {e}") from e

    return mapping.model_copy(update={
        "control_mappings": [
            m.model_copy(update={"control_id": normalize_control_id(m.control_id)})
            for m in mapping.control_mappings
        ],
    })


def load_tool_mapping(path: Path) -> ToolControlMapping:
    """Load a single (possibly user-supplied) tool mapping file."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ToolMappingError(f"Cannot read tool mapping {path}: {e}") from e
    return parse_tool_mapping(data, source=str(path))


def load_tool_mappings(directory: Path) -> list[ToolControlMapping]:
    """Load every ``*.json`` mapping in a directory, ordered by file name."""
    if not directory.is_dir():
        raise ToolMappingError(f"Tool mapping directory not found: {directory}")

    tools = [load_tool_mapping(path) for path in sorted(directory.glob("*.json"))]
    logger.info("Loaded %d tool mappings from %s", len(tools), directory)
    return tools


def get_tool_by_id(tools: Sequence[ToolControlMapping], tool_id: str) -> ToolControlMapping | None:
    return next((t for t in tools if t.tool_id == tool_id), None)


def get_tools_by_category(
    tools: Sequence[ToolControlMapping],
    category: ToolCategory | str,
) -> list[ToolControlMapping]:
    wanted = ToolCategory(category)
    return [t for t in tools if t.category == wanted]


def select_tools(tools: Sequence[ToolControlMapping], tool_ids: Iterable[str]) -> list[ToolControlMapping]:
    """The tools named by ``tool_ids``, in the order given."""
    selected: list[ToolControlMapping] = []
    for tool_id in tool_ids:
        tool = get_tool_by_id(tools, tool_id)
        if tool is None:
            raise ToolMappingError(f"Unknown tool: {tool_id}")
        if tool not in selected:
            selected.append(tool)
    return selected
