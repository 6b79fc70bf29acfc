"""Catalog transformer and family index builder.

Combines normalized controls with the resolved baseline sets into the final
catalog: baseline flags are direct set-membership tests per control (no
inheritance between a control and its enhancements), output is sorted by
family, control number and enhancement number, and family counts and
statistics are recomputed from scratch on every run.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

from ..models.baseline import BaselineSet, BaselineTier
from ..models.control import (
    BaselineApplicability,
    BaselineCounts,
    CatalogStatistics,
    Control,
    ControlCatalog,
    ControlFamily,
    FamilyIndex,
)
from ..core.reference_data import FamilyMetadata
from ..utils.timestamps import utc_timestamp
from .ids import control_sort_key
from .parser import NormalizedControl

logger = logging.getLogger(__name__)

CATALOG_SCHEMA_VERSION = "1.0"


def _applicability(control_id: str, baselines: Mapping[BaselineTier, BaselineSet]) -> BaselineApplicability:
    def member(tier: BaselineTier) -> bool:
        baseline = baselines.get(tier)
        return baseline is not None and control_id in baseline

    return BaselineApplicability(
        low=member(BaselineTier.LOW),
        moderate=member(BaselineTier.MODERATE),
        high=member(BaselineTier.HIGH),
    )


def build_control(
    normalized: NormalizedControl,
    baselines: Mapping[BaselineTier, BaselineSet],
) -> Control:
    return Control(
        id=normalized.id,
        family=normalized.family,
        title=normalized.title,
        description=normalized.description,
        baselines=_applicability(normalized.id, baselines),
        guidance=normalized.guidance or None,
        parameters=list(normalized.parameters) or None,
        related_controls=list(normalized.related_controls) or None,
        parent_control=normalized.parent_id,
        enhancements=list(normalized.enhancement_ids) or None,
    )


def sort_controls(controls: Sequence[Control]) -> list[Control]:
    """Family, then numeric control number, then enhancement number."""
    return sorted(controls, key=lambda c: control_sort_key(c.id))


def build_family_index(
    controls: Sequence[Control],
    family_metadata: Mapping[str, FamilyMetadata],
) -> list[ControlFamily]:
    """Aggregate per-family counts, seeded from the metadata table.

    A family code missing from the table gets a synthesized record so that
    family totals always add up to the catalog total.
    """
    counters: dict[str, dict] = {
        code: _empty_counter(meta.name, meta.description)
        for code, meta in family_metadata.items()
    }

    for control in controls:
        counter = counters.get(control.family)
        if counter is None:
            logger.warning(
                "Control %s has family '%s' with no metadata; adding it as an unknown family",
                control.id, control.family,
            )
            counter = _empty_counter(f"Unknown family {control.family or '?'}", "")
            counters[control.family] = counter

        counter["total"] += 1
        if not control.parent_control:
            counter["base"] += 1
        if control.baselines.low:
            counter["low"] += 1
        if control.baselines.moderate:
            counter["moderate"] += 1
        if control.baselines.high:
            counter["high"] += 1

    return [
        ControlFamily(
            id=code,
            name=counter["name"],
            description=counter["description"],
            total_controls=counter["total"],
            base_controls=counter["base"],
            by_baseline=BaselineCounts(
                low=counter["low"], moderate=counter["moderate"], high=counter["high"]
            ),
        )
        for code, counter in sorted(counters.items())
    ]


def _empty_counter(name: str, description: str) -> dict:
    return {
        "name": name,
        "description": description,
        "total": 0,
        "base": 0,
        "low": 0,
        "moderate": 0,
        "high": 0,
    }


def calculate_statistics(controls: Sequence[Control], family_count: int) -> CatalogStatistics:
    """Single pass over the final control list."""
    base = enhancements = low = moderate = high = 0
    for control in controls:
        if control.parent_control:
            enhancements += 1
        else:
            base += 1
        low += control.baselines.low
        moderate += control.baselines.moderate
        high += control.baselines.high

    return CatalogStatistics(
        total_controls=len(controls),
        base_controls=base,
        enhancements=enhancements,
        family_count=family_count,
        by_baseline=BaselineCounts(low=low, moderate=moderate, high=high),
    )


def transform_catalog(
    normalized: Sequence[NormalizedControl],
    baselines: Mapping[BaselineTier, BaselineSet],
    family_metadata: Mapping[str, FamilyMetadata],
    source: str,
    source_url: str,
    generated_at: Optional[str] = None,
) -> ControlCatalog:
    """Build the catalog artifact from parser output and baseline sets."""
    controls = sort_controls([build_control(n, baselines) for n in normalized])
    families = build_family_index(controls, family_metadata)
    statistics = calculate_statistics(controls, len(families))

    return ControlCatalog(
        version=CATALOG_SCHEMA_VERSION,
        generated_at=generated_at or utc_timestamp(),
        source=source,
        source_url=source_url,
        controls=controls,
        families=families,
        statistics=statistics,
    )


def build_family_index_document(
    catalog: ControlCatalog,
    generated_at: Optional[str] = None,
) -> FamilyIndex:
    """Project the catalog's families into the standalone index artifact."""
    return FamilyIndex(
        version=CATALOG_SCHEMA_VERSION,
        generated_at=generated_at or utc_timestamp(),
        catalog_version=catalog.version,
        families=list(catalog.families),
        family_ids=[f.id for f in catalog.families],
    )
