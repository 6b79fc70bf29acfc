"""Control coverage classification.

For each baseline control, the contributing tools are the selected tools with
at least one mapping entry for that control:

- no contributing tools            -> uncovered
- any contributing ``full`` entry  -> covered
- otherwise                        -> partial
"""

from __future__ import annotations

from typing import Iterable, Sequence

from ..catalog.query import baseline_control_ids
from ..models.baseline import BaselineTier
from ..models.control import ControlCatalog
from ..models.tools import (
    ControlCoverage,
    ControlCoverageReport,
    CoverageLevel,
    CoverageStats,
    CoverageStatus,
    ToolControlMapping,
)


def classify_control(control_id: str, selected_tools: Sequence[ToolControlMapping]) -> ControlCoverage:
    tool_names: list[str] = []
    has_full = False

    for tool in selected_tools:
        entries = [m for m in tool.control_mappings if m.control_id == control_id]
        if not entries:
            continue
        tool_names.append(tool.tool_name)
        if any(m.coverage == CoverageLevel.FULL for m in entries):
            has_full = True

    if not tool_names:
        status = CoverageStatus.UNCOVERED
    elif has_full:
        status = CoverageStatus.COVERED
    else:
        status = CoverageStatus.PARTIAL

    return ControlCoverage(control_id=control_id, status=status, tools=tool_names)


def summarize_coverage(coverage: Iterable[ControlCoverage]) -> CoverageStats:
    counts = {status: 0 for status in CoverageStatus}
    total = 0
    for item in coverage:
        counts[item.status] += 1
        total += 1
    return CoverageStats(
        total=total,
        covered=counts[CoverageStatus.COVERED],
        partial=counts[CoverageStatus.PARTIAL],
        uncovered=counts[CoverageStatus.UNCOVERED],
    )


def calculate_control_coverage(
    control_ids: Iterable[str],
    selected_tools: Sequence[ToolControlMapping],
) -> ControlCoverageReport:
    """Classify every control in ``control_ids`` (duplicates dropped)."""
    seen: set[str] = set()
    coverage: list[ControlCoverage] = []
    for control_id in control_ids:
        if control_id in seen:
            continue
        seen.add(control_id)
        coverage.append(classify_control(control_id, selected_tools))

    return ControlCoverageReport(coverage=coverage, stats=summarize_coverage(coverage))


def calculate_baseline_coverage(
    catalog: ControlCatalog,
    baseline: BaselineTier | str,
    selected_tools: Sequence[ToolControlMapping],
) -> ControlCoverageReport:
    """Coverage of a NIST baseline tier of the catalog."""
    return calculate_control_coverage(baseline_control_ids(catalog, baseline), selected_tools)
