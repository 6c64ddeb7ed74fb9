"""Command-line interface for the deep research system."""

import asyncio
import sys

import click
import logfire
from pydantic import ValidationError
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from openrouter_deep_research.core.config import ResearchConfig
from openrouter_deep_research.core.exceptions import DeepResearchError
from openrouter_deep_research.core.logging import configure_logging
from openrouter_deep_research.core.orchestrator import do_deep_research
from openrouter_deep_research.models.messages import ConversationMessage
from openrouter_deep_research.models.research import DeepResearchResult
from openrouter_deep_research.services.cost_estimator import compute_cost_estimate
from openrouter_deep_research.services.gateway import OpenRouterGateway
from openrouter_deep_research.services.model_catalog import ModelCatalog

console = Console()


def _load_config(**overrides: object) -> ResearchConfig:
    """Environment settings with the given non-None overrides applied and validated."""
    try:
        config = ResearchConfig.from_env()
        for name, value in overrides.items():
            if value is not None:
                setattr(config, name, value)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        message = f"[red]Invalid configuration: {problems}[/red]"
        console.print(Panel(message, title="Error", border_style="red"))
        sys.exit(1)
    return config


def _require_api_key(config: ResearchConfig) -> None:
    if not config.has_api_key:
        console.print("[red]OPENROUTER_API_KEY is not set.[/red]")
        sys.exit(1)


def display_result(result: DeepResearchResult) -> None:
    """Show the final answer followed by sources and run totals."""
    console.print("\n")
    console.print(Panel(Markdown(result.content), title="Answer", border_style="green"))

    if result.resources:
        console.print("\n[bold magenta]Sources:[/bold magenta]")
        for resource in result.resources:
            line = resource.title or resource.url
            if resource.title:
                line += f" ({resource.url})"
            console.print(f"  - {line}")

    table = Table(title="Run Summary", border_style="cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Strategy", result.strategy.value)
    table.add_row("Phases", str(len(result.phase_answers)))
    table.add_row("Research threads", str(result.total_research_threads))
    table.add_row("Web results", str(result.total_web_requests))
    table.add_row("Cost (USD)", f"{result.total_cost:.4f}")
    table.add_row("Generation time", f"{result.total_generation_time:.1f}s")
    table.add_row("Elapsed", f"{result.elapsed_time:.1f}s")
    console.print(table)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool):
    """Deep Research CLI - multi-phase research over OpenRouter."""
    configure_logging(enable_console=verbose)


@cli.command()
@click.argument("question")
@click.option("--phases", "-p", type=int, default=None, help="Number of research phases")
@click.option("--subrequests", "-n", type=int, default=None, help="Sub-queries per phase")
@click.option("--no-classify", is_flag=True, help="Skip strategy classification (use deep)")
def run(question: str, phases: int | None, subrequests: int | None, no_classify: bool):
    """Research QUESTION and print the synthesized answer.

    Examples:

        deep-research run "How do solid-state batteries fail?" --phases 2
    """
    config = _load_config(
        deep_research_phases=phases,
        deep_research_max_subrequests=subrequests,
        deep_research_classify_strategy=False if no_classify else None,
    )
    _require_api_key(config)

    async def _async_run() -> DeepResearchResult:
        with console.status("Starting deep research...") as status:

            def on_status(message: str) -> None:
                status.update(message)
                console.log(message)

            return await do_deep_research(
                config,
                ConversationMessage(role="user", content=question),
                status_callback=on_status,
            )

    try:
        result = asyncio.run(_async_run())
    except DeepResearchError as e:
        logfire.error("Deep research command failed", error_code=e.error_code)
        console.print(Panel(f"[red]{e.message}[/red]", title="Error", border_style="red"))
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Research interrupted[/yellow]")
        sys.exit(130)

    display_result(result)


@cli.command()
@click.option("--phases", "-p", type=int, default=None, help="Number of research phases")
def estimate(phases: int | None):
    """Estimate the upper-bound cost of a run with the current settings."""
    config = _load_config(deep_research_phases=phases)
    _require_api_key(config)

    async def _async_estimate():
        async with OpenRouterGateway.from_config(config) as gateway:
            catalog = ModelCatalog(gateway, has_api_key=config.has_api_key)
            return compute_cost_estimate(config, await catalog.pricing_table())

    try:
        breakdown = asyncio.run(_async_estimate())
    except DeepResearchError as e:
        console.print(f"[red]{e.message}[/red]")
        sys.exit(1)

    table = Table(title="Estimated Cost (USD)", border_style="cyan")
    table.add_column("Stage", style="cyan")
    table.add_column("Cost", style="green", justify="right")
    for label, value in (
        ("Strategy", breakdown.strategy),
        ("Planning", breakdown.planning),
        ("Research", breakdown.execution),
        ("Refinement", breakdown.refinement),
        ("Synthesis", breakdown.synthesis),
        ("Web search", breakdown.web_search),
    ):
        table.add_row(label, f"{value:.4f}")
    table.add_row("[bold]Total[/bold]", f"[bold]{breakdown.total:.4f}[/bold]")
    console.print(table)


@cli.command()
@click.option("--search", "-s", default=None, help="Only show models whose id contains this text")
def models(search: str | None):
    """List available models and their prices per million tokens."""
    config = _load_config()
    _require_api_key(config)

    async def _async_models():
        async with OpenRouterGateway.from_config(config) as gateway:
            return await ModelCatalog(gateway).get_models()

    try:
        entries = asyncio.run(_async_models())
    except DeepResearchError as e:
        console.print(f"[red]{e.message}[/red]")
        sys.exit(1)

    table = Table(title="Models", border_style="cyan")
    table.add_column("Id", style="cyan")
    table.add_column("Context", justify="right")
    table.add_column("Prompt $/M", justify="right", style="green")
    table.add_column("Completion $/M", justify="right", style="green")
    for model in entries:
        if search and search.lower() not in model.id.lower():
            continue
        table.add_row(
            model.id,
            str(model.context_length or "-"),
            f"{model.pricing.prompt * 1_000_000:.2f}",
            f"{model.pricing.completion * 1_000_000:.2f}",
        )
    console.print(table)


if __name__ == "__main__":
    cli()
