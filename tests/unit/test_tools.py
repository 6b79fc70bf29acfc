"""Tests for coverage/tools.py."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from oscalcat.coverage.tools import (
    get_tool_by_id,
    get_tools_by_category,
    load_tool_mapping,
    load_tool_mappings,
    parse_tool_mapping,
    select_tools,
)
from oscalcat.errors import ToolMappingError
from oscalcat.models.tools import CoverageLevel, ToolCategory


class TestParseToolMapping:
    def test_control_ids_normalized(self, tool_mapping_documents):
        tool = parse_tool_mapping(tool_mapping_documents[0])
        assert [m.control_id for m in tool.control_mappings] == ["AC-2", "SI-4"]
        assert tool.control_mappings[0].coverage == CoverageLevel.PARTIAL
        assert tool.category == ToolCategory.SAST

    @pytest.mark.parametrize("missing", ["toolId", "toolName", "category", "controlMappings"])
    def test_missing_required_field(self, tool_mapping_documents, missing):
        data = dict(tool_mapping_documents[0])
        del data[missing]
        with pytest.raises(ToolMappingError, match="Invalid tool mapping format"):
            parse_tool_mapping(data)

    def test_bad_coverage_level(self, tool_mapping_documents):
        data = json.loads(json.dumps(tool_mapping_documents[0]))
        data["controlMappings"][0]["coverage"] = "most"
        with pytest.raises(ToolMappingError):
            parse_tool_mapping(data)

    def test_empty_mappings_accepted(self, tool_mapping_documents):
        data = dict(tool_mapping_documents[0], controlMappings=[])
        tool = parse_tool_mapping(data)
        assert tool.control_mappings == []

    def test_null_mappings_rejected(self, tool_mapping_documents):
        data = dict(tool_mapping_documents[0], controlMappings=None)
        with pytest.raises(ToolMappingError, match="missing controlMappings"):
            parse_tool_mapping(data)

    def test_not_an_object(self):
        with pytest.raises(ToolMappingError):
            parse_tool_mapping(["semgrep"])


class TestLoading:
    def test_load_directory_sorted_by_filename(self, tools_dir: Path):
        tools = load_tool_mappings(tools_dir)
        assert [t.tool_id for t in tools] == ["gitleaks", "semgrep"]

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(ToolMappingError, match="not found"):
            load_tool_mappings(tmp_path / "nope")

    def test_unreadable_file(self, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(ToolMappingError, match="Cannot read"):
            load_tool_mapping(path)


class TestLookups:
    def test_by_id_and_category(self, tools_dir: Path):
        tools = load_tool_mappings(tools_dir)
        assert get_tool_by_id(tools, "semgrep").tool_name == "Semgrep"
        assert get_tool_by_id(tools, "zap") is None
        assert [t.tool_id for t in get_tools_by_category(tools, "secrets")] == ["gitleaks"]

    def test_select_in_given_order(self, tools_dir: Path):
        tools = load_tool_mappings(tools_dir)
        selected = select_tools(tools, ["semgrep", "gitleaks", "semgrep"])
        assert [t.tool_id for t in selected] == ["semgrep", "gitleaks"]

    def test_select_unknown(self, tools_dir: Path):
        tools = load_tool_mappings(tools_dir)
        with pytest.raises(ToolMappingError, match="Unknown tool: zap"):
            select_tools(tools, ["zap"])
