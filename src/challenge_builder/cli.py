"""
Challenge Builder CLI - Command-line interface for backlog revision runs.

Commands:
- init: Write a default challenge-builder.toml
- run: Plan and draft challenge revisions for a project
- results: Show the last stored report for a project
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import DEFAULT_CONFIG_FILENAME, create_default_config
from .orchestrator.mapping import ChallengeBuilderReport
from .utils.logging import setup_logging

app = typer.Typer(
    name="challenge-builder",
    help="Plan and draft backlog challenge revisions from collected insights",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()


@app.command()
def init(
    path: Path = typer.Option(Path.cwd(), "--path", "-p", help="Project directory"),
    provider: str = typer.Option("anthropic", "--provider", help="anthropic or openrouter"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model id"),
) -> None:
    """
    Create a challenge-builder.toml with default settings.

    Example:
        challenge-builder init
        challenge-builder init --provider openrouter --model anthropic/claude-sonnet-4
    """
    if provider not in ("anthropic", "openrouter"):
        console.print(f"[red]Error:[/red] Unsupported provider: {provider}")
        raise typer.Exit(1)

    path.mkdir(parents=True, exist_ok=True)
    config_path = path / DEFAULT_CONFIG_FILENAME

    if config_path.exists():
        console.print(f"[yellow]Warning:[/yellow] {config_path} already exists.")
        raise typer.Exit(1)

    create_default_config(config_path, provider=provider, model=model)
    (path / "data").mkdir(exist_ok=True)

    console.print(f"[green]✓[/green] Created {config_path}")
    console.print("\n[bold]Next steps:[/bold]")
    console.print("1. Put <project_id>.json files in the data/ directory")
    console.print("2. Export the API key named in [model].api_key_env")
    console.print("3. Run: challenge-builder run <project_id>")


@app.command()
def run(
    project_id: str = typer.Argument(..., help="Project to review"),
    config: Path = typer.Option(Path(DEFAULT_CONFIG_FILENAME), "--config", "-c", help="Config file path"),
    format: str = typer.Option("summary", "--format", "-f", help="Format: summary, json or markdown"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the report to a file"),
    temperature: Optional[float] = typer.Option(None, "--temperature", "-t", help="Sampling temperature (0-2)"),
    max_output_tokens: Optional[int] = typer.Option(None, "--max-output-tokens", help="Output token cap"),
    log_level: str = typer.Option("WARNING", "--log-level", "-l", help="Log level"),
) -> None:
    """
    Run the challenge builder for a project.

    The planner decides which challenges to update and which to create,
    then one agent call per directive drafts the detailed suggestion.
    The report is stored so `results` can show it later.

    Example:
        challenge-builder run proj-1
        challenge-builder run proj-1 --format markdown -o review.md
    """
    if format not in ("summary", "json", "markdown"):
        console.print(f"[red]Error:[/red] Unsupported format: {format}")
        raise typer.Exit(1)

    setup_logging(level=log_level)

    try:
        report = asyncio.run(_run_builder(config, project_id, temperature, max_output_tokens))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise typer.Exit(0)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    _emit_report(report, format, output, project_id)


async def _run_builder(
    config_path: Path,
    project_id: str,
    temperature: Optional[float],
    max_output_tokens: Optional[int],
) -> ChallengeBuilderReport:
    """Run the builder and store the report."""
    from .orchestrator.core import RunOptions
    from .web.services.builder_service import BuilderService

    options = RunOptions(temperature=temperature, max_output_tokens=max_output_tokens)
    service = BuilderService.from_config_path(config_path)
    await service.initialize()

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task(f"Reviewing {project_id}...", total=None)
            return await service.run(project_id, options)
    finally:
        await service.close()


@app.command()
def results(
    project_id: str = typer.Argument(..., help="Project id"),
    config: Path = typer.Option(Path(DEFAULT_CONFIG_FILENAME), "--config", "-c", help="Config file path"),
    format: str = typer.Option("summary", "--format", "-f", help="Format: summary, json or markdown"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the report to a file"),
) -> None:
    """
    Show the last stored report for a project.

    Example:
        challenge-builder results proj-1
        challenge-builder results proj-1 --format json
    """
    try:
        stored = asyncio.run(_load_results(config, project_id))
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if stored is None:
        console.print(f"[yellow]No stored report for {project_id}. Run 'challenge-builder run {project_id}' first.[/yellow]")
        raise typer.Exit(1)

    console.print(f"[dim]Last run: {stored.last_run_at.isoformat()}[/dim]")
    _emit_report(stored.report, format, output, project_id)


async def _load_results(config_path: Path, project_id: str):
    """Read the stored report without building a model client."""
    from .config import load_config
    from .storage import ResultStore

    config = load_config(config_path).resolve_paths(config_path.parent)
    store = ResultStore(config.storage.results_db_path)
    await store.initialize()
    try:
        return await store.get(project_id)
    finally:
        await store.close()


def _emit_report(
    report: ChallengeBuilderReport,
    format: str,
    output: Optional[Path],
    project_id: str,
) -> None:
    if format == "json":
        text = json.dumps(report.model_dump(mode="json", by_alias=True), indent=2)
    elif format == "markdown":
        from .export import render_report_markdown

        text = render_report_markdown(report, project_name=project_id)
    else:
        _print_summary(report, project_id)
        return

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]✓[/green] Exported to {output}")
    else:
        console.print(text, markup=False, highlight=False)


def _print_summary(report: ChallengeBuilderReport, project_id: str) -> None:
    errors = report.errors or []

    console.print(Panel.fit(
        f"[bold]{project_id}[/bold]\n\n"
        f"{report.plan_summary or 'No plan summary'}\n\n"
        f"Updates: {len(report.challenge_suggestions)} | "
        f"New: {len(report.new_challenge_suggestions)} | "
        f"Errors: [{'red' if errors else 'green'}]{len(errors)}[/] | "
        f"Warnings: {len(report.warnings)}",
        title="Challenge Builder",
        border_style="blue",
    ))

    if report.challenge_suggestions or report.new_challenge_suggestions:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Kind", width=8)
        table.add_column("Challenge", style="cyan")
        table.add_column("Title")
        table.add_column("Insights", justify="right")

        for update in report.challenge_suggestions:
            table.add_row(
                "update",
                update.challenge_id,
                update.challenge_title,
                str(len(update.foundation_insights)),
            )
        for creation in report.new_challenge_suggestions:
            table.add_row(
                "create",
                creation.reference_id or "-",
                creation.title,
                str(len(creation.foundation_insights)),
            )
        console.print(table)

    for warning in report.warnings:
        console.print(f"[yellow]⚠[/yellow] {warning.directive_kind} {warning.directive_id}: {warning.message}")
    for error in errors:
        target = error.directive_id or "run"
        console.print(f"[red]✗[/red] {error.directive_kind or ''} {target} ({error.failure}): {error.message}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
