"""Tool mapping and coverage report models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .control import CamelModel


class ToolCategory(str, Enum):
    SAST = "SAST"
    SECRETS = "secrets"
    SCA = "SCA"
    DAST = "DAST"
    IAC = "IaC"
    CONTAINER = "container"
    OTHER = "other"


class CoverageLevel(str, Enum):
    FULL = "full"
    PARTIAL = "partial"


class ControlMapping(CamelModel):
    control_id: str
    coverage: CoverageLevel
    rationale: str = ""
    evidence: Optional[str] = None


class ToolControlMapping(CamelModel):
    """One security tool and the controls it helps satisfy."""

    tool_id: str
    tool_name: str
    vendor: str = ""
    category: ToolCategory
    control_mappings: list[ControlMapping]
    default_configuration: Optional[dict] = None


class CoverageStatus(str, Enum):
    COVERED = "covered"
    PARTIAL = "partial"
    UNCOVERED = "uncovered"


class ControlCoverage(CamelModel):
    control_id: str
    status: CoverageStatus
    tools: list[str] = []


class CoverageStats(CamelModel):
    total: int = 0
    covered: int = 0
    partial: int = 0
    uncovered: int = 0


class ControlCoverageReport(CamelModel):
    coverage: list[ControlCoverage] = []
    stats: CoverageStats = CoverageStats()
