"""Tests for CLI entry points."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from oscalcat.cli.main import cli


def _build(project: Path) -> None:
    result = CliRunner().invoke(cli, ["-p", str(project), "build"])
    assert result.exit_code == 0, result.output


class TestBuildCommand:
    def test_build(self, raw_project: Path):
        _build(raw_project)
        assert (raw_project / "public" / "data" / "nist-800-53-rev5.json").exists()

    @patch("oscalcat.core.pipeline.run_build")
    def test_flags_passed_through(self, mock_build, tmp_project: Path):
        mock_build.return_value = 0
        result = CliRunner().invoke(cli, ["-p", str(tmp_project), "build", "--force", "--verbose"])
        assert result.exit_code == 0
        kwargs = mock_build.call_args.kwargs
        assert kwargs["force"] is True
        assert kwargs["verbose"] is True
        assert kwargs["validate_only"] is False

    def test_validate_only_fails_without_outputs(self, tmp_project: Path):
        result = CliRunner().invoke(cli, ["-p", str(tmp_project), "build", "--validate-only"])
        assert result.exit_code == 1

    def test_missing_project(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["-p", str(tmp_path / "nope"), "build"])
        assert result.exit_code == 2


class TestStageCommands:
    def test_transform_families_fedramp_validate(self, raw_project: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["-p", str(raw_project), "transform"])
        assert result.exit_code == 0
        assert "Extracted 6 controls (5 base, 1 enhancements) in 20 families" in result.output

        assert runner.invoke(cli, ["-p", str(raw_project), "families"]).exit_code == 0

        result = runner.invoke(cli, ["-p", str(raw_project), "fedramp"])
        assert result.exit_code == 0
        assert "FedRAMP Tailored LI-SaaS" in result.output

        assert runner.invoke(cli, ["-p", str(raw_project), "validate"]).exit_code == 0

    def test_transform_without_sources(self, tmp_project: Path):
        result = CliRunner().invoke(cli, ["-p", str(tmp_project), "transform"])
        assert result.exit_code == 1
        assert "Catalog file not found" in result.output


class TestCoverageCommand:
    def test_json(self, raw_project: Path, tools_dir: Path):
        _build(raw_project)
        result = CliRunner().invoke(cli, [
            "-p", str(raw_project), "coverage", "--baseline", "moderate",
            "--tools", str(tools_dir), "--format", "json",
        ])
        assert result.exit_code == 0, result.output
        report = json.loads(result.output)
        assert report["stats"] == {"total": 4, "covered": 1, "partial": 1, "uncovered": 2}
        statuses = {c["controlId"]: c["status"] for c in report["coverage"]}
        assert statuses["AC-2"] == "covered"
        assert statuses["SI-4"] == "partial"

    def test_selected_tool(self, raw_project: Path, tools_dir: Path):
        _build(raw_project)
        result = CliRunner().invoke(cli, [
            "-p", str(raw_project), "coverage", "-b", "low",
            "--tools", str(tools_dir), "-t", "semgrep", "--format", "json",
        ])
        report = json.loads(result.output)
        assert report["stats"]["partial"] == 1
        assert report["stats"]["covered"] == 0

    def test_unknown_tool(self, raw_project: Path, tools_dir: Path):
        _build(raw_project)
        result = CliRunner().invoke(cli, [
            "-p", str(raw_project), "coverage", "-b", "low", "--tools", str(tools_dir), "-t", "zap",
        ])
        assert result.exit_code == 1
        assert "Unknown tool: zap" in result.output

    def test_fedramp_baseline_junit(self, raw_project: Path, tools_dir: Path, tmp_path: Path):
        _build(raw_project)
        output = tmp_path / "coverage.xml"
        result = CliRunner().invoke(cli, [
            "-p", str(raw_project), "coverage", "-b", "FEDRAMP_LOW",
            "--tools", str(tools_dir), "--format", "junit", "-o", str(output),
        ])
        assert result.exit_code == 0, result.output
        assert output.read_bytes().startswith(b"<?xml")

    def test_ci_mode_fails_on_uncovered(self, raw_project: Path, tools_dir: Path):
        _build(raw_project)
        result = CliRunner().invoke(cli, [
            "-p", str(raw_project), "coverage", "-b", "low", "--tools", str(tools_dir), "--ci",
        ])
        assert result.exit_code == 1
        assert "Uncovered" in result.output

    def test_fedramp_baseline_missing_from_artifact(self, raw_project: Path, tools_dir: Path):
        _build(raw_project)
        artifact = raw_project / "public" / "data" / "fedramp-baselines.json"
        data = json.loads(artifact.read_text(encoding="utf-8"))
        data["baselines"] = [b for b in data["baselines"] if b["id"] != "FEDRAMP_LI_SAAS"]
        artifact.write_text(json.dumps(data), encoding="utf-8")

        result = CliRunner().invoke(cli, [
            "-p", str(raw_project), "coverage", "-b", "FEDRAMP_LI_SAAS", "--tools", str(tools_dir),
        ])
        assert result.exit_code == 1
        assert "Baseline FEDRAMP_LI_SAAS not found in" in result.output
