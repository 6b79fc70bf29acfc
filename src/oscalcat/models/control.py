"""Catalog data models: controls, families and statistics.

Field names are snake_case in Python and camelCase in the JSON artifacts.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ControlKind(str, Enum):
    BASE = "base"
    ENHANCEMENT = "enhancement"


class ParameterSelect(CamelModel):
    how_many: Literal["one", "one-or-more"] = "one"
    choices: list[str] = []


class ControlParameter(CamelModel):
    """An organization-defined parameter attached to a control."""

    id: str
    label: Optional[str] = None
    guidelines: Optional[str] = None
    values: Optional[list[str]] = None
    select: Optional[ParameterSelect] = None


class BaselineApplicability(CamelModel):
    model_config = ConfigDict(frozen=True)

    low: bool = False
    moderate: bool = False
    high: bool = False


class BaselineCounts(CamelModel):
    low: int = 0
    moderate: int = 0
    high: int = 0


class Control(CamelModel):
    """A single control or enhancement in the flattened catalog."""

    model_config = ConfigDict(frozen=True)

    id: str
    family: str
    title: str
    description: str = ""
    baselines: BaselineApplicability = BaselineApplicability()
    guidance: Optional[str] = None
    parameters: Optional[list[ControlParameter]] = None
    related_controls: Optional[list[str]] = None
    parent_control: Optional[str] = None
    enhancements: Optional[list[str]] = None

    @property
    def kind(self) -> ControlKind:
        if self.parent_control:
            return ControlKind.ENHANCEMENT
        return ControlKind.BASE


class ControlFamily(CamelModel):
    id: str
    name: str
    description: str = ""
    total_controls: int = 0
    base_controls: int = 0
    by_baseline: BaselineCounts = BaselineCounts()


class CatalogStatistics(CamelModel):
    total_controls: int = 0
    base_controls: int = 0
    enhancements: int = 0
    family_count: int = 0
    by_baseline: BaselineCounts = BaselineCounts()


class ControlCatalog(CamelModel):
    """The transformed catalog artifact."""

    version: str = "1.0"
    generated_at: str
    source: str
    source_url: str
    controls: list[Control] = []
    families: list[ControlFamily] = []
    statistics: CatalogStatistics = CatalogStatistics()


class FamilyIndex(CamelModel):
    """Lightweight projection of the catalog's families."""

    version: str = "1.0"
    generated_at: str
    catalog_version: str
    families: list[ControlFamily] = []
    family_ids: list[str] = []
