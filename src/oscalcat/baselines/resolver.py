"""Baseline profile resolution.

Reads OSCAL baseline profiles and produces one immutable ``BaselineSet`` per
tier. A missing or unreadable profile yields an empty set and a warning;
downstream validation reports the consequence.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from ..catalog.ids import normalize_control_id
from ..models.baseline import BaselineSet, BaselineTier

logger = logging.getLogger(__name__)


def _dicts(value: Any) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def extract_profile_control_ids(profile_document: dict) -> set[str]:
    """Normalized control IDs named by a profile's include-controls lists."""
    control_ids: set[str] = set()
    profile = profile_document.get("profile")
    if not isinstance(profile, dict):
        return control_ids

    for imp in _dicts(profile.get("imports")):
        for include in _dicts(imp.get("include-controls")):
            with_ids = include.get("with-ids")
            if not isinstance(with_ids, list):
                continue
            for raw_id in with_ids:
                if isinstance(raw_id, str) and raw_id.strip():
                    control_ids.add(normalize_control_id(raw_id))

    return control_ids


def resolve_baseline(tier: BaselineTier, profile_path: Path) -> BaselineSet:
    """Build the BaselineSet for one tier from its profile file."""
    label = tier.value.upper()
    try:
        document = json.loads(profile_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("Baseline profile for %s not found: %s", label, profile_path)
        return BaselineSet(tier=tier)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Error reading baseline %s (%s): %s", label, profile_path, e)
        return BaselineSet(tier=tier)

    if not isinstance(document, dict) or not isinstance(document.get("profile"), dict):
        logger.warning("Baseline profile %s has no 'profile' root property", profile_path)
        return BaselineSet(tier=tier)

    control_ids = extract_profile_control_ids(document)
    logger.info("%s baseline: %d controls", label, len(control_ids))
    return BaselineSet(tier=tier, control_ids=frozenset(control_ids))


def resolve_baselines(profile_paths: dict[BaselineTier, Path]) -> dict[BaselineTier, BaselineSet]:
    """Resolve every tier independently."""
    return {tier: resolve_baseline(tier, path) for tier, path in profile_paths.items()}
