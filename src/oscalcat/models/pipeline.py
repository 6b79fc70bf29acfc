"""Pipeline run and validation result models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from .control import BaselineCounts


class StepResult(BaseModel):
    name: str
    success: bool
    message: str = ""
    duration_ms: int = 0
    skipped: bool = False

    @property
    def status(self) -> str:
        if self.skipped:
            return "skipped"
        return "success" if self.success else "failed"


class ValidationStats(BaseModel):
    catalog_size: int = 0
    families_size: int = 0
    fedramp_size: int = 0
    total_controls: int = 0
    family_count: int = 0
    by_baseline: BaselineCounts = BaselineCounts()


class ValidationResult(BaseModel):
    valid: bool
    errors: list[str] = []
    stats: Optional[ValidationStats] = None
