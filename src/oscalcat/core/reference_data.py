"""Declarative reference tables: family metadata and FedRAMP overlay data.

The packaged YAML files under ``oscalcat.data`` are used unless the
configuration points ``reference_data.*`` at replacement files.
"""

from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ValidationError

from ..catalog.ids import normalize_control_id
from ..errors import ConfigurationError
from ..models.baseline import BaselineTier, FedRampBaselineId
from .config import resolve_path


class FamilyMetadata(BaseModel):
    name: str
    description: str = ""


class FedRampBaselineSpec(BaseModel):
    name: str
    description: str = ""
    nist_tier: Optional[BaselineTier] = None


class FedRampReferenceData(BaseModel):
    source: str
    source_url: str
    baselines: dict[FedRampBaselineId, FedRampBaselineSpec]
    additional_controls: dict[BaselineTier, list[str]] = {}
    li_saas_controls: list[str] = []
    parameter_defaults: dict[str, str] = {}

    def additions_for(self, tier: BaselineTier) -> list[str]:
        return [normalize_control_id(cid) for cid in self.additional_controls.get(tier, [])]


def _read_yaml(path: Optional[Path], package_file: str) -> dict:
    try:
        if path is not None:
            content = path.read_text(encoding="utf-8-sig")
        else:
            content = (resources.files("oscalcat.data") / package_file).read_text(encoding="utf-8")
        return yaml.safe_load(content) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot load reference data {path or package_file}: {e}") from e


def load_family_metadata(path: Optional[Path] = None) -> dict[str, FamilyMetadata]:
    """Family code -> display metadata."""
    data = _read_yaml(path, "family_metadata.yaml")
    try:
        return {
            code.upper(): FamilyMetadata.model_validate(meta)
            for code, meta in (data.get("families") or {}).items()
        }
    except ValidationError as e:
        raise ConfigurationError(f"Invalid family metadata: {e}") from e


def load_fedramp_reference(path: Optional[Path] = None) -> FedRampReferenceData:
    data = _read_yaml(path, "fedramp.yaml")
    try:
        return FedRampReferenceData.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid FedRAMP reference data: {e}") from e


def reference_paths(config: dict) -> tuple[Optional[Path], Optional[Path]]:
    """Configured override paths for (family metadata, FedRAMP data)."""
    ref = config.get("reference_data") or {}
    family = ref.get("family_metadata")
    fedramp = ref.get("fedramp")
    return (
        resolve_path(config, family) if family else None,
        resolve_path(config, fedramp) if fedramp else None,
    )
