"""Explicit cache for loaded artifacts.

Owned by the caller; ``clear()`` drops everything so tests and long-lived
processes can reload after a rebuild.
"""

from __future__ import annotations

from pathlib import Path

from ..core.artifacts import read_artifact
from ..coverage.tools import load_tool_mappings
from ..models.baseline import FedRampBaselinesDocument
from ..models.control import ControlCatalog, FamilyIndex
from ..models.tools import ToolControlMapping


class ArtifactCache:
    """Per-path memo of catalog, family index, FedRAMP and tool mapping loads."""

    def __init__(self) -> None:
        self._catalogs: dict[Path, ControlCatalog] = {}
        self._families: dict[Path, FamilyIndex] = {}
        self._fedramp: dict[Path, FedRampBaselinesDocument] = {}
        self._tools: dict[Path, list[ToolControlMapping]] = {}

    def load_catalog(self, path: Path) -> ControlCatalog:
        key = path.resolve()
        if key not in self._catalogs:
            self._catalogs[key] = read_artifact(path, ControlCatalog)
        return self._catalogs[key]

    def load_families(self, path: Path) -> FamilyIndex:
        key = path.resolve()
        if key not in self._families:
            self._families[key] = read_artifact(path, FamilyIndex)
        return self._families[key]

    def load_fedramp(self, path: Path) -> FedRampBaselinesDocument:
        key = path.resolve()
        if key not in self._fedramp:
            self._fedramp[key] = read_artifact(path, FedRampBaselinesDocument)
        return self._fedramp[key]

    def load_tool_mappings(self, directory: Path) -> list[ToolControlMapping]:
        key = directory.resolve()
        if key not in self._tools:
            self._tools[key] = load_tool_mappings(directory)
        return list(self._tools[key])

    def clear(self) -> None:
        self._catalogs.clear()
        self._families.clear()
        self._fedramp.clear()
        self._tools.clear()
