"""FedRAMP baseline derivation.

FedRAMP Low/Moderate/High are the NIST baseline of the same tier plus a fixed
list of additional required controls. LI-SaaS is an independently enumerated
allow-list. Each baseline carries the FedRAMP parameter defaults whose family
prefix matches a family present in its control set.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from ..catalog.ids import extract_family_code, normalize_control_id, sort_control_ids
from ..core.reference_data import FedRampBaselineSpec, FedRampReferenceData
from ..models.baseline import (
    BaselineSet,
    BaselineTier,
    FedRampBaseline,
    FedRampBaselineId,
    FedRampBaselinesDocument,
)
from ..models.control import ControlCatalog
from ..utils.timestamps import utc_timestamp

logger = logging.getLogger(__name__)

FEDRAMP_SCHEMA_VERSION = "1.0"


def baseline_sets_from_catalog(catalog: ControlCatalog) -> dict[BaselineTier, BaselineSet]:
    """Recover the NIST baseline sets from a transformed catalog's flags."""
    members: dict[BaselineTier, set[str]] = {tier: set() for tier in BaselineTier}
    for control in catalog.controls:
        if control.baselines.low:
            members[BaselineTier.LOW].add(control.id)
        if control.baselines.moderate:
            members[BaselineTier.MODERATE].add(control.id)
        if control.baselines.high:
            members[BaselineTier.HIGH].add(control.id)
    return {
        tier: BaselineSet(tier=tier, control_ids=frozenset(ids))
        for tier, ids in members.items()
    }


def parameter_defaults_for(
    control_ids: Iterable[str],
    parameter_defaults: Mapping[str, str],
) -> dict[str, str]:
    """Parameter defaults whose family prefix appears among ``control_ids``.

    Filters by family only; the exact control a parameter belongs to need not
    be in the baseline.
    """
    families = {extract_family_code(cid).lower() for cid in control_ids}
    families.discard("")
    return {
        param_id: value
        for param_id, value in parameter_defaults.items()
        if param_id[:2].lower() in families
    }


def resolve_fedramp_control_ids(
    spec: FedRampBaselineSpec,
    nist_baselines: Mapping[BaselineTier, BaselineSet],
    reference: FedRampReferenceData,
) -> list[str]:
    if spec.nist_tier is None:
        return sort_control_ids(normalize_control_id(cid) for cid in reference.li_saas_controls)

    nist = nist_baselines.get(spec.nist_tier)
    nist_ids = nist.control_ids if nist is not None else frozenset()
    return sort_control_ids(nist_ids | set(reference.additions_for(spec.nist_tier)))


def generate_fedramp_baselines(
    nist_baselines: Mapping[BaselineTier, BaselineSet],
    reference: FedRampReferenceData,
    generated_at: Optional[str] = None,
) -> FedRampBaselinesDocument:
    """Build all FedRAMP baselines described by the reference data."""
    baselines: list[FedRampBaseline] = []

    for baseline_id, spec in reference.baselines.items():
        control_ids = resolve_fedramp_control_ids(spec, nist_baselines, reference)
        logger.info("%s: %d controls", spec.name, len(control_ids))
        baselines.append(FedRampBaseline(
            id=FedRampBaselineId(baseline_id),
            name=spec.name,
            description=spec.description,
            control_count=len(control_ids),
            control_ids=control_ids,
            parameter_defaults=parameter_defaults_for(control_ids, reference.parameter_defaults),
        ))

    return FedRampBaselinesDocument(
        version=FEDRAMP_SCHEMA_VERSION,
        generated_at=generated_at or utc_timestamp(),
        source=reference.source,
        source_url=reference.source_url,
        baselines=baselines,
    )
