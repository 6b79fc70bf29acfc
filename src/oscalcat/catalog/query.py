"""Read-only lookups over a transformed catalog."""

from __future__ import annotations

from typing import Optional, Sequence

from ..models.baseline import BaselineTier
from ..models.control import Control, ControlCatalog, ControlFamily
from .ids import normalize_control_id


def get_controls_by_family(catalog: ControlCatalog, family_id: str) -> list[Control]:
    family = family_id.upper()
    return [c for c in catalog.controls if c.family == family]


def get_control_by_id(catalog: ControlCatalog, control_id: str) -> Optional[Control]:
    wanted = normalize_control_id(control_id)
    return next((c for c in catalog.controls if c.id == wanted), None)


def get_family_by_id(families: Sequence[ControlFamily], family_id: str) -> Optional[ControlFamily]:
    family = family_id.upper()
    return next((f for f in families if f.id == family), None)


def is_in_baseline(control: Control, baseline: BaselineTier | str) -> bool:
    return bool(getattr(control.baselines, BaselineTier(baseline).value))


def get_baseline_badges(control: Control) -> list[str]:
    """Display badges for the baselines a control belongs to."""
    badges: list[str] = []
    if control.baselines.low:
        badges.append("Low")
    if control.baselines.moderate:
        badges.append("Moderate")
    if control.baselines.high:
        badges.append("High")
    return badges


def baseline_control_ids(catalog: ControlCatalog, baseline: BaselineTier | str) -> list[str]:
    """IDs of the controls in a NIST baseline, in catalog order."""
    tier = BaselineTier(baseline)
    return [c.id for c in catalog.controls if is_in_baseline(c, tier)]
