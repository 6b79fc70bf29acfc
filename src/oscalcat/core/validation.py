"""End-of-run consistency checks on the generated artifacts.

Failures are collected as messages rather than raised: earlier stages have
already completed, but the run must not be reported successful.
"""

from __future__ import annotations

from collections import Counter
from typing import Sequence

from ..errors import CatalogStructureError
from ..models.baseline import BaselineTier, FedRampBaselineId, FedRampBaselinesDocument
from ..models.control import ControlCatalog, FamilyIndex
from ..models.pipeline import ValidationResult, ValidationStats
from .artifacts import read_artifact
from .config import output_file

FEDRAMP_NIST_TIERS = {
    FedRampBaselineId.LOW: BaselineTier.LOW,
    FedRampBaselineId.MODERATE: BaselineTier.MODERATE,
    FedRampBaselineId.HIGH: BaselineTier.HIGH,
}


def check_catalog_consistency(catalog: ControlCatalog, expected_families: Sequence[str]) -> list[str]:
    errors: list[str] = []
    stats = catalog.statistics
    total = len(catalog.controls)

    if stats.total_controls != total:
        errors.append(
            f"Statistics mismatch: totalControls is {stats.total_controls} but found {total} controls"
        )
    if stats.base_controls + stats.enhancements != stats.total_controls:
        errors.append(
            f"Statistics mismatch: {stats.base_controls} base + {stats.enhancements} enhancements "
            f"!= {stats.total_controls} total"
        )
    family_total = sum(f.total_controls for f in catalog.families)
    if family_total != total:
        errors.append(f"Family totals sum to {family_total} but catalog has {total} controls")
    if stats.family_count != len(catalog.families):
        errors.append(
            f"Statistics mismatch: familyCount is {stats.family_count} but found {len(catalog.families)} families"
        )

    for tier in BaselineTier:
        if getattr(stats.by_baseline, tier.value) == 0:
            errors.append(f"{tier.value.upper()} baseline is empty (profile missing or unreadable?)")

    errors.extend(_check_family_set([f.id for f in catalog.families], expected_families))
    errors.extend(_check_relations(catalog))
    return errors


def _check_family_set(found: Sequence[str], expected: Sequence[str]) -> list[str]:
    errors: list[str] = []
    if len(found) != len(expected):
        errors.append(f"Expected {len(expected)} families, found {len(found)}")
    missing = [f for f in expected if f not in found]
    if missing:
        errors.append(f"Missing families: {', '.join(missing)}")
    unexpected = [f for f in found if f not in expected]
    if unexpected:
        errors.append(f"Unexpected families: {', '.join(unexpected)}")
    return errors


def _check_relations(catalog: ControlCatalog) -> list[str]:
    """Enhancement/parent links must agree in both directions."""
    errors: list[str] = []
    by_id = {c.id: c for c in catalog.controls}

    duplicates = [cid for cid, n in Counter(c.id for c in catalog.controls).items() if n > 1]
    if duplicates:
        errors.append(f"Duplicate control IDs: {', '.join(sorted(duplicates))}")

    for control in catalog.controls:
        if control.parent_control:
            parent = by_id.get(control.parent_control)
            if parent is None:
                errors.append(f"{control.id}: parent {control.parent_control} not in catalog")
            elif control.id not in (parent.enhancements or []):
                errors.append(f"{control.id}: not listed in enhancements of {parent.id}")

        for enhancement_id in control.enhancements or []:
            enhancement = by_id.get(enhancement_id)
            if enhancement is None:
                errors.append(f"{control.id}: enhancement {enhancement_id} not in catalog")
            elif enhancement.parent_control != control.id:
                errors.append(f"{enhancement_id}: parentControl does not reference {control.id}")
    return errors


def check_family_index(index: FamilyIndex, catalog: ControlCatalog) -> list[str]:
    errors: list[str] = []
    if index.family_ids != [f.id for f in index.families]:
        errors.append("Family index familyIds do not match its families")
    if index.families != catalog.families:
        errors.append("Family index is out of date with the catalog families")
    if index.catalog_version != catalog.version:
        errors.append(
            f"Family index catalogVersion {index.catalog_version} != catalog version {catalog.version}"
        )
    return errors


def check_fedramp_baselines(document: FedRampBaselinesDocument, catalog: ControlCatalog) -> list[str]:
    """Each FedRAMP tier must contain its whole NIST tier."""
    errors: list[str] = []
    for baseline in document.baselines:
        if baseline.control_count != len(baseline.control_ids):
            errors.append(
                f"{baseline.id.value}: controlCount {baseline.control_count} "
                f"!= {len(baseline.control_ids)} controlIds"
            )
        tier = FEDRAMP_NIST_TIERS.get(baseline.id)
        if tier is None:
            continue
        nist_ids = {c.id for c in catalog.controls if getattr(c.baselines, tier.value)}
        missing = sorted(nist_ids - set(baseline.control_ids))
        if missing:
            errors.append(
                f"{baseline.id.value} is missing {len(missing)} NIST {tier.value.upper()} controls"
            )
    return errors


def validate_outputs(config: dict) -> ValidationResult:
    """Validate the artifacts in the configured output directory."""
    paths = {key: output_file(config, key) for key in ("catalog", "families", "fedramp")}
    missing = [f"Missing: {path}" for path in paths.values() if not path.exists()]
    if missing:
        return ValidationResult(valid=False, errors=missing)

    try:
        catalog = read_artifact(paths["catalog"], ControlCatalog)
        index = read_artifact(paths["families"], FamilyIndex)
        fedramp = read_artifact(paths["fedramp"], FedRampBaselinesDocument)
    except CatalogStructureError as e:
        return ValidationResult(valid=False, errors=[str(e)])

    expected = config["validation"]["expected_families"]
    errors = check_catalog_consistency(catalog, expected)
    errors.extend(check_family_index(index, catalog))
    errors.extend(check_fedramp_baselines(fedramp, catalog))
    if errors:
        return ValidationResult(valid=False, errors=errors)

    return ValidationResult(
        valid=True,
        stats=ValidationStats(
            catalog_size=paths["catalog"].stat().st_size,
            families_size=paths["families"].stat().st_size,
            fedramp_size=paths["fedramp"].stat().st_size,
            total_controls=catalog.statistics.total_controls,
            family_count=len(catalog.families),
            by_baseline=catalog.statistics.by_baseline,
        ),
    )
