"""Command-line interface for EcoAudit."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, NoReturn, Optional, TypeVar

import click
import structlog
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ecoaudit import __version__
from ecoaudit.container import DependencyContainer
from ecoaudit.errors import EcoAuditError
from ecoaudit.pipeline import AnalysisPipeline
from ecoaudit.protocols import AuditResult, ScoreResult
from ecoaudit.utils.atomic import write_json_atomic

console = Console()
err_console = Console(stderr=True)
logger = structlog.get_logger(__name__)

T = TypeVar("T")

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _fail(message: str) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(EXIT_FAILURE)


def _container(ctx: click.Context) -> DependencyContainer:
    return DependencyContainer(config_path=ctx.obj["config_path"], log_level=ctx.obj["log_level"])


def _run(ctx: click.Context, action: Callable[[AnalysisPipeline], Awaitable[T]]) -> T:
    """Run one analysis inside the container lifecycle; errors exit with status 1."""
    container = _container(ctx)

    async def main() -> T:
        async with container.lifecycle():
            return await action(container.get_pipeline())

    try:
        return asyncio.run(main())
    except EcoAuditError as e:
        _fail(str(e))
    except (ValidationError, yaml.YAMLError) as e:
        _fail(f"Invalid configuration: {e}")
    except (KeyboardInterrupt, asyncio.CancelledError):
        err_console.print("[yellow]Interrupted[/yellow]")
        sys.exit(EXIT_INTERRUPTED)


def _emit(data: dict, as_json: bool, output: Optional[Path], render: Callable[[], None]) -> None:
    if output is not None:
        if not write_json_atomic(data, output):
            _fail(f"Could not write report to {output}")
        if not as_json:
            console.print(f"[green]Report saved to {escape(str(output))}[/green]")
    if as_json:
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        render()


def _score_rows(table: Table, result: ScoreResult) -> None:
    table.add_row("URL", escape(result.url))
    table.add_row("Score", f"{result.score:.2f} / 100")
    table.add_row("Grade", f"{result.grade.value} ({result.grade.label})")
    table.add_row("Greenhouse gases", f"{result.ghg:.2f} gCO2e")
    table.add_row("Water", f"{result.water:.2f} cl")
    table.add_row("DOM elements", str(result.metrics.dom_elements))
    table.add_row("Requests", str(result.metrics.requests))
    table.add_row("Page size", f"{result.metrics.size_kb:.2f} KB")


def render_quick(result: ScoreResult) -> None:
    table = Table(title="EcoIndex (quick)", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    _score_rows(table, result)
    console.print(table)


def render_full(result: AuditResult) -> None:
    table = Table(title="EcoIndex (full audit)", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    _score_rows(table, result.ecoindex)
    lh = result.lighthouse
    table.add_row("Performance", f"{lh.performance:g}")
    table.add_row("Accessibility", f"{lh.accessibility:g}")
    table.add_row("Best practices", f"{lh.best_practices:g}")
    table.add_row("SEO", f"{lh.seo:g}")
    table.add_row("Accessibility issues", str(len(result.accessibility_issues)))
    if result.html_report_path:
        table.add_row("HTML report", escape(result.html_report_path))
    console.print(table)

    if result.analytics is None:
        return
    domains = Table(title="Requests by domain")
    domains.add_column("Domain", style="cyan")
    domains.add_column("Requests", justify="right")
    domains.add_column("Transfer", justify="right")
    domains.add_column("%", justify="right")
    for stat in result.analytics.domain_stats.domains[:10]:
        domains.add_row(
            escape(stat.domain),
            str(stat.request_count),
            f"{stat.total_transfer_size / 1024:.1f} KB",
            f"{stat.percentage:.1f}",
        )
    console.print(domains)

    cache = result.analytics.cache_stats
    duplicates = result.analytics.duplicate_stats
    console.print(
        f"Resources cached < 7 days: [yellow]{cache.problematic_count}[/yellow] / {cache.total_resources}, "
        f"duplicate resources: [yellow]{duplicates.duplicate_count}[/yellow] "
        f"({duplicates.total_wasted_bytes / 1024:.1f} KB wasted)"
    )


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Configuration file path",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (overrides the configuration file)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], log_level: Optional[str]) -> None:
    """EcoAudit - environmental footprint scoring for web pages."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["log_level"] = log_level.upper() if log_level else None


@cli.command()
@click.argument("url")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the result as JSON")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def quick(ctx: click.Context, url: str, output: Optional[Path], as_json: bool) -> None:
    """Score URL from metrics collected in a local headless browser."""
    result = _run(ctx, lambda pipeline: pipeline.analyze_quick(url))
    _emit(result.to_dict(), as_json, output, lambda: render_quick(result))


@cli.command()
@click.argument("url")
@click.option("--html", "include_html", is_flag=True, help="Ask the audit tool for an HTML report")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the result as JSON")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def full(
    ctx: click.Context,
    url: str,
    include_html: bool,
    output: Optional[Path],
    as_json: bool,
) -> None:
    """Score URL with the external audit tool (sub-scores and request analytics included)."""
    result = _run(ctx, lambda pipeline: pipeline.analyze_full(url, include_html=include_html or None))
    _emit(result.to_dict(), as_json, output, lambda: render_full(result))


@cli.command("config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Print the effective configuration."""
    container = _container(ctx)
    try:
        config = container.load_config()
    except (ValidationError, yaml.YAMLError, OSError) as e:
        _fail(f"Invalid configuration: {e}")
    source: Any = str(container.config_path) if container.config_path else "defaults"
    err_console.print(f"[blue]Configuration source:[/blue] {escape(source)}")
    click.echo(config.model_dump_json(indent=2))


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
