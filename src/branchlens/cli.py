"""Command-line interface for branchlens."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import structlog
import typer
from rich.console import Console
from rich.table import Table

from branchlens.extraction import GitCollector
from branchlens.models import AnalysisConfig, Settings, load_config
from branchlens.pipeline import ReconciliationPipeline

app = typer.Typer(
    name="branchlens",
    help="Reconcile Git branches with issues and get concrete cleanup commands",
    add_completion=False,
)
console = Console()


def _configure_logging(level: str) -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _read_json(path: Optional[Path], default: Any) -> Any:
    if path is None:
        return default
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _resolve_config(config_path: Optional[Path], settings: Settings) -> AnalysisConfig:
    config = load_config(config_path or settings.config_path)
    if settings.base_branch and not config.base_branch:
        config = config.model_copy(update={"base_branch": settings.base_branch})
    return config


@app.command()
def analyze(
    repo_path: Path = typer.Argument(Path("."), help="Path to Git repository"),
    issues_file: Optional[Path] = typer.Option(None, "--issues", "-i", help="JSON file with issues"),
    memory_file: Optional[Path] = typer.Option(None, "--memory", "-m", help="JSON file with confirmed branch links"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Analysis config (JSON, // comments allowed)"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Treat this branch as the current one"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Analyze branches against issues and print ranked recommendations.

    Exits with code 2 when a critical recommendation is present.
    """
    settings = Settings()
    _configure_logging("DEBUG" if verbose else settings.log_level)

    try:
        issues = _read_json(issues_file, [])
        if isinstance(issues, dict):
            issues = issues.get("issues", [])
        memory = _read_json(memory_file, {})

        config = _resolve_config(config_path, settings)
        pipeline = ReconciliationPipeline(GitCollector(repo_path), config)
        result = pipeline.run(issues, memory, current_branch=branch)

        if as_json:
            print(json.dumps(result.to_dict(), indent=2, default=str))
            return

        report = result.report
        console.print(f"[bold green]Repository:[/bold green] {repo_path}")
        if result.analysis.current_branch:
            console.print(f"[bold blue]Current branch:[/bold blue] {result.analysis.current_branch}")
        console.print(
            f"[cyan]Verified:[/cyan] {len(report.verified)}  "
            f"[cyan]Detected:[/cyan] {len(report.detected)}  "
            f"[cyan]Unlinked:[/cyan] {len(report.unlinked)}  "
            f"[cyan]Orphaned:[/cyan] {len(report.orphaned)}  "
            f"[cyan]Duplicate groups:[/cyan] {len(report.duplicates)}"
        )
        console.print(result.summary.formatted, markup=False, highlight=False)

        if result.summary.has_critical:
            raise typer.Exit(2)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        if verbose:
            import traceback
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
        raise typer.Exit(1)


@app.command()
def branch(
    name: Optional[str] = typer.Argument(None, help="Branch to inspect (default: current branch)"),
    repo_path: Path = typer.Option(Path("."), "--repo", "-r", help="Path to Git repository"),
    base_branch: Optional[str] = typer.Option(None, "--base", help="Base branch (default: main or master)"),
) -> None:
    """Show activity metrics and status of a single branch."""
    settings = Settings()
    _configure_logging(settings.log_level)

    try:
        collector = GitCollector(repo_path)
        name = name or collector.current_branch()
        if not name:
            console.print("[bold red]Error:[/bold red] HEAD is detached, pass a branch name")
            raise typer.Exit(1)

        config = AnalysisConfig(base_branch=base_branch or settings.base_branch)
        result = ReconciliationPipeline(collector, config).run([], branches=[name], current_branch=name)
        context = result.analysis.current_context
        metrics = context.metrics

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right", style="white")
        table.add_row("Age (days)", str(metrics.age_days))
        table.add_row(
            "Last commit",
            "unknown" if metrics.days_since_last_commit is None else context.work_summary.last_activity,
        )
        table.add_row("Commits", str(metrics.commit_count))
        table.add_row(f"Ahead of {metrics.base_branch or '?'}", str(metrics.ahead_count))
        table.add_row(f"Behind {metrics.base_branch or '?'}", str(metrics.behind_count))
        table.add_row("Changed files", str(metrics.changed_files_count))
        table.add_row("Lines", context.work_summary.lines_changed)

        console.print(f"\n[bold]{name}[/bold] [yellow]{context.status.value}[/yellow]")
        console.print(table)
        console.print(f"[cyan]Progress:[/cyan] {context.work_summary.estimated_progress}")
        if context.linked_issue:
            console.print(f"[cyan]Issue:[/cyan] {context.linked_issue}")
        if metrics.unresolved:
            console.print(f"[dim]Could not determine: {', '.join(metrics.unresolved)}[/dim]")
        for finding in context.findings:
            console.print(f"  • {finding.message}", markup=False)
            if finding.command:
                console.print(f"    → {finding.command}", markup=False, highlight=False)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
