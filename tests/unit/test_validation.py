"""Tests for core/validation.py."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from oscalcat.core.config import get_effective_config, output_file
from oscalcat.core.pipeline import run_family_index, run_fedramp, run_transform
from oscalcat.core.validation import (
    check_catalog_consistency,
    check_fedramp_baselines,
    validate_outputs,
)
from oscalcat.models.control import ControlCatalog

TIMESTAMP = "2026-01-01T00:00:00.000Z"


@pytest.fixture
def built_config(raw_project: Path) -> dict:
    config = get_effective_config(raw_project)
    catalog = run_transform(config, generated_at=TIMESTAMP)
    run_family_index(config, catalog, generated_at=TIMESTAMP)
    run_fedramp(config, catalog, generated_at=TIMESTAMP)
    return config


def _rewrite(path: Path, mutate) -> None:
    data = json.loads(path.read_text(encoding="utf-8"))
    mutate(data)
    path.write_text(json.dumps(data), encoding="utf-8")


class TestValidateOutputs:
    def test_valid(self, built_config):
        result = validate_outputs(built_config)
        assert result.valid, result.errors
        assert result.stats.total_controls == 6
        assert result.stats.family_count == 20
        assert result.stats.by_baseline.moderate == 4
        assert result.stats.catalog_size > 0

    def test_missing_files(self, tmp_project: Path):
        result = validate_outputs(get_effective_config(tmp_project))
        assert not result.valid
        assert len(result.errors) == 3
        assert all(e.startswith("Missing: ") for e in result.errors)

    def test_unparsable_artifact(self, built_config):
        output_file(built_config, "families").write_text("{", encoding="utf-8")
        result = validate_outputs(built_config)
        assert not result.valid
        assert "JSON parse error" in result.errors[0]

    def test_statistics_mismatch(self, built_config):
        def mutate(data):
            data["statistics"]["totalControls"] = 99

        _rewrite(output_file(built_config, "catalog"), mutate)
        result = validate_outputs(built_config)
        assert not result.valid
        assert any("totalControls is 99" in e for e in result.errors)

    def test_stale_family_index(self, built_config):
        def mutate(data):
            data["families"][0]["totalControls"] += 1

        _rewrite(output_file(built_config, "families"), mutate)
        result = validate_outputs(built_config)
        assert "Family index is out of date with the catalog families" in result.errors

    def test_fedramp_missing_nist_control(self, built_config):
        def mutate(data):
            low = next(b for b in data["baselines"] if b["id"] == "FEDRAMP_LOW")
            low["controlIds"].remove("AC-1")
            low["controlCount"] -= 1

        _rewrite(output_file(built_config, "fedramp"), mutate)
        result = validate_outputs(built_config)
        assert "FEDRAMP_LOW is missing 1 NIST LOW controls" in result.errors


class TestCatalogConsistency:
    def _catalog(self, built_config) -> ControlCatalog:
        return ControlCatalog.model_validate_json(
            output_file(built_config, "catalog").read_text(encoding="utf-8")
        )

    def test_missing_and_unexpected_families(self, built_config):
        catalog = self._catalog(built_config)
        expected = [f.id for f in catalog.families if f.id != "AC"] + ["XX"]
        errors = check_catalog_consistency(catalog, expected)
        assert "Missing families: XX" in errors
        assert "Unexpected families: AC" in errors

    def test_family_count(self, built_config):
        catalog = self._catalog(built_config)
        errors = check_catalog_consistency(catalog, ["AC", "SI"])
        assert "Expected 2 families, found 20" in errors

    def test_broken_parent_link(self, built_config):
        catalog = self._catalog(built_config)
        controls = [
            c.model_copy(update={"enhancements": None}) if c.id == "AC-2" else c
            for c in catalog.controls
        ]
        broken = catalog.model_copy(update={"controls": controls})
        errors = check_catalog_consistency(broken, [f.id for f in catalog.families])
        assert "AC-2(1): not listed in enhancements of AC-2" in errors

    def test_empty_baseline(self, built_config):
        catalog = self._catalog(built_config)
        stats = catalog.statistics.model_copy(
            update={"by_baseline": catalog.statistics.by_baseline.model_copy(update={"high": 0})}
        )
        errors = check_catalog_consistency(
            catalog.model_copy(update={"statistics": stats}), [f.id for f in catalog.families]
        )
        assert any(e.startswith("HIGH baseline is empty") for e in errors)

    def test_fedramp_count_mismatch(self, built_config):
        from oscalcat.models.baseline import FedRampBaselinesDocument

        document = FedRampBaselinesDocument.model_validate_json(
            output_file(built_config, "fedramp").read_text(encoding="utf-8")
        )
        document.baselines[0].control_count += 1
        errors = check_fedramp_baselines(document, self._catalog(built_config))
        assert any("controlCount" in e for e in errors)
