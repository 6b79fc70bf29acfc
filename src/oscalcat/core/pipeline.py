"""Data pipeline orchestrator.

Download (when needed) -> transform -> family index -> FedRAMP baselines ->
validate. Every stage reads its inputs once and writes its artifact once; a
structural error aborts the run, validation failures make it unsuccessful.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

import httpx
from rich.console import Console
from rich.table import Table

from ..baselines.fedramp import baseline_sets_from_catalog, generate_fedramp_baselines
from ..baselines.resolver import resolve_baselines
from ..catalog.parser import get_catalog_metadata, load_catalog_document, parse_catalog
from ..catalog.transform import build_family_index_document, transform_catalog
from ..errors import OscalCatError
from ..models.baseline import BaselineTier, FedRampBaselinesDocument
from ..models.control import ControlCatalog, FamilyIndex
from ..models.pipeline import StepResult, ValidationResult
from ..utils.timestamps import utc_timestamp
from .artifacts import read_artifact, write_artifact
from .config import get_effective_config, output_file, raw_file
from .download import download_sources, is_download_needed
from .reference_data import load_family_metadata, load_fedramp_reference, reference_paths
from .validation import validate_outputs

logger = logging.getLogger(__name__)
console = Console()


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / 1024 / 1024:.2f} MB"


def format_duration(ms: int) -> str:
    if ms < 1000:
        return f"{ms}ms"
    return f"{ms / 1000:.1f}s"


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def run_transform(config: dict, generated_at: Optional[str] = None) -> ControlCatalog:
    """Raw catalog + profiles -> catalog artifact."""
    family_path, _ = reference_paths(config)
    family_metadata = load_family_metadata(family_path)

    baselines = resolve_baselines({tier: raw_file(config, tier.value) for tier in BaselineTier})

    document = load_catalog_document(raw_file(config, "catalog"))
    metadata = get_catalog_metadata(document)
    logger.info("Catalog: %s (version %s, OSCAL %s)",
                metadata["title"], metadata["version"], metadata["oscal_version"])

    normalized = parse_catalog(document)
    catalog = transform_catalog(
        normalized,
        baselines,
        family_metadata,
        source=config["source"]["name"],
        source_url=config["source"]["url"],
        generated_at=generated_at,
    )

    path = output_file(config, "catalog")
    size = write_artifact(path, catalog)
    logger.info("Wrote %s (%s, %d controls)", path, format_bytes(size), len(catalog.controls))

    max_mb = config["outputs"].get("max_catalog_mb")
    if max_mb and size > max_mb * 1024 * 1024:
        logger.warning("Output file exceeds %sMB target (%s)", max_mb, format_bytes(size))
    return catalog


def run_family_index(
    config: dict,
    catalog: Optional[ControlCatalog] = None,
    generated_at: Optional[str] = None,
) -> FamilyIndex:
    """Catalog artifact -> family index artifact."""
    if catalog is None:
        catalog = read_artifact(output_file(config, "catalog"), ControlCatalog)

    index = build_family_index_document(catalog, generated_at=generated_at)
    path = output_file(config, "families")
    size = write_artifact(path, index)
    logger.info("Wrote %s (%s, %d families)", path, format_bytes(size), len(index.families))
    return index


def run_fedramp(
    config: dict,
    catalog: Optional[ControlCatalog] = None,
    generated_at: Optional[str] = None,
) -> FedRampBaselinesDocument:
    """Catalog artifact -> FedRAMP baselines artifact."""
    if catalog is None:
        catalog = read_artifact(output_file(config, "catalog"), ControlCatalog)

    _, fedramp_path = reference_paths(config)
    document = generate_fedramp_baselines(
        baseline_sets_from_catalog(catalog),
        load_fedramp_reference(fedramp_path),
        generated_at=generated_at,
    )
    path = output_file(config, "fedramp")
    size = write_artifact(path, document)
    logger.info("Wrote %s (%s)", path, format_bytes(size))
    return document


def _timed(name: str, fn: Callable[[], str]) -> StepResult:
    start = time.monotonic()
    try:
        message = fn()
    except (OscalCatError, httpx.HTTPError, OSError) as e:
        logger.debug("Step %s failed", name, exc_info=True)
        return StepResult(
            name=name,
            success=False,
            message=str(e),
            duration_ms=int((time.monotonic() - start) * 1000),
        )
    return StepResult(
        name=name,
        success=True,
        message=message,
        duration_ms=int((time.monotonic() - start) * 1000),
    )


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


def print_validation_failures(result: ValidationResult) -> None:
    console.print("  [red]✗[/red] Validation failed:")
    for error in result.errors:
        console.print(f"    - {error}")


def print_summary(result: ValidationResult) -> None:
    stats = result.stats
    if stats is None:
        return
    console.print()
    console.print("  [bold]Summary[/bold]")
    console.print(f"  Catalog size:  {format_bytes(stats.catalog_size)}")
    console.print(f"  Families size: {format_bytes(stats.families_size)}")
    console.print(f"  FedRAMP size:  {format_bytes(stats.fedramp_size)}")
    console.print(f"  Controls: {stats.total_controls} total")
    console.print(f"    - LOW baseline: {stats.by_baseline.low}")
    console.print(f"    - MODERATE baseline: {stats.by_baseline.moderate}")
    console.print(f"    - HIGH baseline: {stats.by_baseline.high}")
    console.print(f"  Families: {stats.family_count}")


def print_family_table(index: FamilyIndex) -> None:
    table = Table(title="Family Control Counts", show_lines=False)
    table.add_column("Family", style="cyan")
    for label in ("Total", "Base", "Low", "Mod", "High"):
        table.add_column(label, justify="right")

    for family in index.families:
        table.add_row(
            family.id,
            str(family.total_controls),
            str(family.base_controls),
            str(family.by_baseline.low),
            str(family.by_baseline.moderate),
            str(family.by_baseline.high),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def run_validate(config: dict) -> int:
    console.print("  Step 1/1: Validating output files...")
    result = validate_outputs(config)
    if not result.valid:
        print_validation_failures(result)
        return 1

    console.print("  [green]✓[/green] All validations passed")
    print_summary(result)
    return 0


def run_build(
    project_path: Path,
    force: bool = False,
    validate_only: bool = False,
    verbose: bool = False,
    cli_overrides: Optional[dict] = None,
    generated_at: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> int:
    """Run the full data pipeline. Returns the process exit code."""
    config = get_effective_config(project_path, cli_overrides)
    mode = "Validate Only" if validate_only else "Force Rebuild" if force else "Build"

    console.print()
    console.print("  [bold cyan]OSCAL Data Pipeline[/bold cyan]")
    console.print(f"  Mode:    [white]{mode}[/white]")
    console.print(f"  Verbose: [white]{verbose}[/white]")
    console.print()

    if validate_only:
        return run_validate(config)

    run_started = time.monotonic()
    timestamp = generated_at or utc_timestamp()
    steps: list[StepResult] = []
    state: dict = {}

    console.print("  Step 1/5: Downloading OSCAL data...")
    if is_download_needed(config, force):
        step = _timed("Download", lambda: _download(config, force, transport))
    else:
        step = StepResult(name="Download", success=True, message="Cached", skipped=True)
    steps.append(step)
    if not _report_step(step, "Downloaded", "Using cached data (manifest valid)"):
        return 1

    console.print("  Step 2/5: Transforming to application schema...")
    step = _timed("Transform", lambda: _transform(config, timestamp, state))
    steps.append(step)
    if not _report_step(step, "Transformed"):
        return 1

    console.print("  Step 3/5: Generating family index...")
    step = _timed("Families", lambda: _families(config, timestamp, state))
    steps.append(step)
    if not _report_step(step, "Generated"):
        return 1

    console.print("  Step 4/5: Generating FedRAMP baselines...")
    step = _timed("FedRAMP", lambda: _fedramp(config, timestamp, state))
    steps.append(step)
    if not _report_step(step, "Generated"):
        return 1

    console.print("  Step 5/5: Validating outputs...")
    started = time.monotonic()
    result = validate_outputs(config)
    steps.append(StepResult(
        name="Validate",
        success=result.valid,
        message="; ".join(result.errors),
        duration_ms=int((time.monotonic() - started) * 1000),
    ))

    if not result.valid:
        print_validation_failures(result)
        exit_code = 1
    else:
        console.print("  [green]✓[/green] All validations passed")
        print_summary(result)
        exit_code = 0

    console.print()
    console.print(f"  Total time: {format_duration(int((time.monotonic() - run_started) * 1000))}")

    if verbose:
        if "index" in state:
            print_family_table(state["index"])
        console.print("  Step breakdown:")
        for step in steps:
            console.print(f"    - {step.name}: {step.status} ({format_duration(step.duration_ms)})")

    console.print()
    if exit_code == 0:
        console.print("  [green]Data pipeline completed successfully![/green]")
    return exit_code


def _report_step(step: StepResult, done_label: str, skipped_label: str = "Skipped") -> bool:
    if step.skipped:
        console.print(f"  [green]✓[/green] {skipped_label}")
        return True
    if not step.success:
        console.print(f"  [red]✗[/red] {step.name} failed: {step.message}")
        return False
    console.print(f"  [green]✓[/green] {done_label} ({format_duration(step.duration_ms)})")
    return True


def _download(config: dict, force: bool, transport: Optional[httpx.BaseTransport]) -> str:
    manifest = download_sources(config, force=force, transport=transport)
    return f"{len(manifest.files)} files"


def _transform(config: dict, timestamp: str, state: dict) -> str:
    catalog = run_transform(config, generated_at=timestamp)
    state["catalog"] = catalog
    return f"{catalog.statistics.total_controls} controls"


def _families(config: dict, timestamp: str, state: dict) -> str:
    index = run_family_index(config, state.get("catalog"), generated_at=timestamp)
    state["index"] = index
    return f"{len(index.families)} families"


def _fedramp(config: dict, timestamp: str, state: dict) -> str:
    document = run_fedramp(config, state.get("catalog"), generated_at=timestamp)
    return ", ".join(f"{b.name}: {b.control_count}" for b in document.baselines)
