"""Baseline data models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from .control import CamelModel


class BaselineTier(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class BaselineSet(BaseModel):
    """Normalized control IDs belonging to one NIST baseline tier."""

    model_config = ConfigDict(frozen=True)

    tier: BaselineTier
    control_ids: frozenset[str] = frozenset()

    def __contains__(self, control_id: object) -> bool:
        return control_id in self.control_ids

    def __len__(self) -> int:
        return len(self.control_ids)


class FedRampBaselineId(str, Enum):
    LOW = "FEDRAMP_LOW"
    MODERATE = "FEDRAMP_MODERATE"
    HIGH = "FEDRAMP_HIGH"
    LI_SAAS = "FEDRAMP_LI_SAAS"


class FedRampBaseline(CamelModel):
    id: FedRampBaselineId
    name: str
    description: str = ""
    control_count: int = 0
    control_ids: list[str] = []
    parameter_defaults: dict[str, str] = {}


class FedRampBaselinesDocument(CamelModel):
    """The FedRAMP baselines artifact."""

    version: str = "1.0"
    generated_at: str
    source: str
    source_url: str
    baselines: list[FedRampBaseline] = []

    def get(self, baseline_id: FedRampBaselineId | str) -> FedRampBaseline | None:
        key = FedRampBaselineId(baseline_id)
        return next((b for b in self.baselines if b.id == key), None)
