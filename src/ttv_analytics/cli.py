"""Command-line interface for ttv-analytics."""

import logging
import sys
from datetime import datetime, time, timezone
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import get_config, load_config
from .services import AnalyticsEngine, AnalyticsReport, InsightPriority, load_snapshot
from .utils.datetime import to_date_string


console = Console()

PRIORITY_COLORS = {
    InsightPriority.HIGH: "red",
    InsightPriority.MEDIUM: "yellow",
    InsightPriority.LOW: "green",
}


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def format_optional(value, suffix: str = "") -> str:
    """Format a possibly missing value for table display."""
    if value is None:
        return "[dim]-[/dim]"
    if isinstance(value, bool):
        return "[green]yes[/green]" if value else "[red]no[/red]"
    return f"{value}{suffix}"


def render_report(report: AnalyticsReport) -> None:
    """Print a report as rich tables."""
    table = Table(title="Implementation Projects")
    table.add_column("Project", style="bold")
    table.add_column("Client")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("TTV", justify="right")
    table.add_column("Overdue", justify="right")
    table.add_column("Blocked", justify="right")
    table.add_column("Forecast")
    table.add_column("On Track")

    for metric in report.metrics:
        table.add_row(
            metric.project_name,
            metric.client_name,
            metric.status.value,
            f"{metric.progress_percent}% ({metric.completed_tasks}/{metric.total_tasks})",
            format_optional(metric.time_to_value_days, " d"),
            str(metric.overdue_task_count),
            str(metric.blocked_task_count),
            format_optional(to_date_string(metric.estimated_completion_date)),
            format_optional(metric.is_on_track),
        )
    console.print(table)

    benchmarks = report.benchmarks
    summary_lines = [
        f"Projects: {benchmarks.total_projects} total, {benchmarks.completed_projects} completed, "
        f"{benchmarks.active_projects} active",
        f"Time to value: avg {format_optional(benchmarks.avg_time_to_value_days, ' d')}, "
        f"median {format_optional(benchmarks.median_time_to_value_days, ' d')}, "
        f"range {format_optional(benchmarks.min_time_to_value_days)}"
        f"-{format_optional(benchmarks.max_time_to_value_days, ' d')}",
        f"Active health: avg progress {format_optional(benchmarks.avg_progress_percent, '%')}, "
        f"{benchmarks.projects_on_track} on track, {benchmarks.projects_at_risk} at risk",
    ]
    if report.trend is not None:
        trend = report.trend
        line = f"Trend: {trend.trend.value}"
        if trend.direction is not None:
            line += f" ({trend.direction.value}, {trend.change_percent}% over {trend.data_points} projects)"
        summary_lines.append(line)
    console.print(Panel("\n".join(summary_lines), title="Benchmarks"))

    if not report.insights:
        console.print("[dim]No insights.[/dim]")
        return

    console.print("\n[bold]Insights[/bold]")
    for insight in report.insights:
        color = PRIORITY_COLORS.get(insight.priority, "white")
        console.print(f"[{color}]{insight.priority.value.upper():<6}[/{color}] "
                      f"[bold]{insight.title}[/bold]: {insight.message}")


@click.group()
@click.option("--config", type=click.Path(), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx, config, verbose):
    """ttv-analytics - time-to-value analytics for implementation projects."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    configure_logging(verbose)

    if config:
        load_config(Path(config))
    else:
        get_config()


@main.command()
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "-f", "output_format",
              type=click.Choice(['text', 'json', 'csv', 'table']),
              default='text', help="Output format")
@click.option("--as-of", help="Evaluate as of this date (YYYY-MM-DD)")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write output to file")
def report(snapshot, output_format, as_of, output):
    """Run the analytics pipeline over a JSON or YAML snapshot."""
    now: Optional[datetime] = None
    if as_of:
        try:
            now = datetime.combine(datetime.strptime(as_of, '%Y-%m-%d').date(), time.min,
                                   tzinfo=timezone.utc)
        except ValueError:
            console.print("[red]Error: Invalid --as-of date. Use YYYY-MM-DD[/red]")
            sys.exit(1)

    try:
        projects, tasks = load_snapshot(snapshot)
        result = AnalyticsEngine(get_config()).run(projects, tasks, now=now)
    except (ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    if output_format == 'text' and not output:
        render_report(result)
        return

    content = result.export('table' if output_format == 'text' else output_format)
    if output:
        Path(output).write_text(content)
        console.print(f"[green]Report written to {output}[/green]")
    else:
        click.echo(content)


@main.command()
def phases():
    """List the configured phase table."""
    definition = get_config().phase_definition()

    table = Table(title="Phases")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    for index, (key, name) in enumerate(definition.items(), start=1):
        table.add_row(str(index), key, name)
    console.print(table)


@main.group(name='config')
def config_group():
    """Configuration commands."""


@config_group.command(name='show')
def config_show():
    """Print the effective configuration as YAML."""
    click.echo(get_config().to_yaml())


if __name__ == "__main__":
    main()
