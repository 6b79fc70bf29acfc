"""oscalcat command line.

Builds the catalog artifacts and computes tool coverage reports.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from ..errors import OscalCatError
from ..utils.log import setup_logging

BASELINE_CHOICES = [
    "low", "moderate", "high",
    "FEDRAMP_LOW", "FEDRAMP_MODERATE", "FEDRAMP_HIGH", "FEDRAMP_LI_SAAS",
]

console = Console()


@click.group()
@click.option("--project", "-p", type=click.Path(exists=True, file_okay=False), default=".",
              help="Project directory (holds oscalcat.yaml)")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx: click.Context, project: str, verbose: bool) -> None:
    """oscalcat - NIST SP 800-53 OSCAL catalog pipeline."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["project"] = Path(project)
    ctx.obj["verbose"] = verbose


def _config(ctx: click.Context) -> dict:
    from ..core.config import get_effective_config

    return get_effective_config(ctx.obj["project"])


def _fail(error: Exception | str) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


@cli.command()
@click.option("--force", is_flag=True, help="Re-download and regenerate everything")
@click.option("--validate-only", is_flag=True, help="Validate existing files without regeneration")
@click.option("--verbose", is_flag=True, help="Show step breakdown and family table")
@click.pass_context
def build(ctx: click.Context, force: bool, validate_only: bool, verbose: bool) -> None:
    """Download, transform, derive and validate all artifacts."""
    from ..core.pipeline import run_build

    exit_code = run_build(
        project_path=ctx.obj["project"],
        force=force,
        validate_only=validate_only,
        verbose=verbose or ctx.obj["verbose"],
    )
    sys.exit(exit_code)


@cli.command()
@click.option("--force", is_flag=True, help="Re-download files even if they already exist")
@click.pass_context
def download(ctx: click.Context, force: bool) -> None:
    """Download the raw NIST OSCAL catalog and baseline profiles."""
    from ..core.download import download_sources

    try:
        manifest = download_sources(_config(ctx), force=force)
    except OscalCatError as e:
        _fail(e)
    for entry in manifest.files:
        click.echo(f"{entry.filename}  {entry.size} bytes  sha256:{entry.checksum[:12]}")


@cli.command()
@click.pass_context
def transform(ctx: click.Context) -> None:
    """Transform the raw catalog and profiles into the catalog artifact."""
    from ..core.pipeline import run_transform

    try:
        catalog = run_transform(_config(ctx))
    except OscalCatError as e:
        _fail(e)
    stats = catalog.statistics
    click.echo(
        f"Extracted {stats.total_controls} controls "
        f"({stats.base_controls} base, {stats.enhancements} enhancements) "
        f"in {stats.family_count} families"
    )


@cli.command()
@click.pass_context
def families(ctx: click.Context) -> None:
    """Write the family index from the catalog artifact."""
    from ..core.pipeline import print_family_table, run_family_index

    try:
        index = run_family_index(_config(ctx))
    except OscalCatError as e:
        _fail(e)
    print_family_table(index)


@cli.command()
@click.pass_context
def fedramp(ctx: click.Context) -> None:
    """Write the FedRAMP baselines from the catalog artifact."""
    from ..core.pipeline import run_fedramp

    try:
        document = run_fedramp(_config(ctx))
    except OscalCatError as e:
        _fail(e)
    for baseline in document.baselines:
        click.echo(f"{baseline.name}: {baseline.control_count} controls")


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Validate the generated artifacts."""
    from ..core.pipeline import run_validate

    sys.exit(run_validate(_config(ctx)))


@cli.command()
@click.option("--baseline", "-b", type=click.Choice(BASELINE_CHOICES), required=True)
@click.option("--tools", "tools_dir", type=click.Path(exists=True, file_okay=False), required=True,
              help="Directory of tool mapping JSON files")
@click.option("--tool", "-t", "tool_ids", multiple=True, help="Tool ID to select (default: all)")
@click.option("--custom", type=click.Path(exists=True, dir_okay=False), multiple=True,
              help="Extra tool mapping file to include")
@click.option("--format", "output_format", type=click.Choice(["table", "json", "junit"]), default="table")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write JSON/JUnit output here")
@click.option("--fail-on-partial", is_flag=True, help="JUnit/CI: treat partial coverage as failure")
@click.option("--ci", is_flag=True, help="CI mode: exit 1 when any control fails")
@click.pass_context
def coverage(
    ctx: click.Context,
    baseline: str,
    tools_dir: str,
    tool_ids: tuple[str, ...],
    custom: tuple[str, ...],
    output_format: str,
    output: str | None,
    fail_on_partial: bool,
    ci: bool,
) -> None:
    """Classify every baseline control as covered, partial or uncovered."""
    from ..catalog.cache import ArtifactCache
    from ..core.artifacts import dump_artifact
    from ..core.config import output_file
    from ..coverage.calculator import calculate_baseline_coverage, calculate_control_coverage
    from ..coverage.tools import load_tool_mapping, select_tools
    from ..formatters.junit import build_coverage_junit
    from ..models.tools import CoverageStatus

    config = _config(ctx)
    cache = ArtifactCache()
    try:
        tools = cache.load_tool_mappings(Path(tools_dir))
        tools.extend(load_tool_mapping(Path(path)) for path in custom)
        selected = select_tools(tools, tool_ids) if tool_ids else tools

        if baseline.startswith("FEDRAMP_"):
            document = cache.load_fedramp(output_file(config, "fedramp"))
            fedramp_baseline = document.get(baseline)
            if fedramp_baseline is None:
                _fail(f"Baseline {baseline} not found in {output_file(config, 'fedramp')}")
            report = calculate_control_coverage(fedramp_baseline.control_ids, selected)
        else:
            catalog = cache.load_catalog(output_file(config, "catalog"))
            report = calculate_baseline_coverage(catalog, baseline, selected)
    except OscalCatError as e:
        _fail(e)

    fail_on = [CoverageStatus.UNCOVERED]
    if fail_on_partial:
        fail_on.append(CoverageStatus.PARTIAL)
    failures = sum(1 for item in report.coverage if item.status in fail_on)

    if output_format == "json":
        content = dump_artifact(report)
        if output:
            Path(output).write_text(content, encoding="utf-8")
        else:
            click.echo(content)
    elif output_format == "junit":
        xml_bytes, _ = build_coverage_junit(report, fail_on, suite_name=f"Coverage {baseline}")
        if output:
            Path(output).write_bytes(xml_bytes)
        else:
            click.echo(xml_bytes.decode("utf-8"))
    else:
        _print_coverage(report, baseline)

    if ci and failures:
        sys.exit(1)


def _print_coverage(report, baseline: str) -> None:
    colors = {"covered": "green", "partial": "yellow", "uncovered": "red"}
    table = Table(title=f"Coverage: {baseline} ({report.stats.total} controls)")
    table.add_column("Control", style="cyan")
    table.add_column("Status")
    table.add_column("Tools")
    for item in report.coverage:
        color = colors[item.status.value]
        table.add_row(item.control_id, f"[{color}]{item.status.value}[/{color}]", ", ".join(item.tools))
    console.print(table)

    stats = report.stats
    console.print(
        f"  Covered: [green]{stats.covered}[/green]  "
        f"Partial: [yellow]{stats.partial}[/yellow]  "
        f"Uncovered: [red]{stats.uncovered}[/red]  "
        f"Total: {stats.total}"
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
