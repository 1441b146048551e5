"""
Main application entry point for revintel.

Provides CLI interface for running research and inspecting configuration.
"""

import asyncio
import sys
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from revintel.cli_commands.doctor import doctor
from revintel.core.config import get_settings, print_configuration_summary, validate_required_settings
from revintel.core.logging import set_correlation_id, setup_logging
from revintel.core.models import PERSONA_DISPLAY_NAMES, IntelligenceReport, ResearchDepth, ResearchRequest
from revintel.intelligence.pipeline import run_research

console = Console()


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines instead of rich output")
@click.option("--correlation-id", help="Set correlation ID for request tracing")
@click.pass_context
def main(ctx, debug: bool, json_logs: bool, correlation_id: Optional[str]):
    """Sales-intelligence research for a named company.

    Searches the web within a per-request budget, synthesizes the findings
    with a language model, and prints a structured outreach brief.
    """
    ctx.ensure_object(dict)

    setup_logging(debug=debug, rich_output=not json_logs)

    if correlation_id:
        set_correlation_id(correlation_id)

    ctx.obj["debug"] = debug
    ctx.obj["correlation_id"] = correlation_id


main.add_command(doctor)


@main.command()
@click.argument("entity_name")
@click.option("--category", default="", help="Industry or category of the company")
@click.option("--site", default=None, help="Company website, e.g. acme.com")
@click.option("--deep", is_flag=True, help="Use the deep synthesis model tier")
@click.option("--no-search", is_flag=True, help="Skip the web search batch")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.pass_context
def research(
    ctx,
    entity_name: str,
    category: str,
    site: Optional[str],
    deep: bool,
    no_search: bool,
    as_json: bool,
):
    """Research ENTITY_NAME and print an intelligence report."""
    try:
        request = ResearchRequest(
            entity_name=entity_name,
            entity_category=category,
            entity_site=site,
            depth=ResearchDepth.DEEP if deep else ResearchDepth.STANDARD,
        )
    except ValidationError as e:
        console.print(f"[red]Invalid request:[/red] {e.errors()[0]['msg']}")
        sys.exit(2)

    cfg = get_settings()
    if no_search:
        cfg = cfg.model_copy(update={"search": cfg.search.model_copy(update={"enabled": False})})

    missing = validate_required_settings(cfg)
    if missing:
        console.print("[red]Configuration Error:[/red]")
        for item in missing:
            console.print(f"  • Missing: {item}")
        sys.exit(1)

    def on_progress(label: str) -> None:
        if not as_json:
            console.print(f"[blue]{label}[/blue]")

    try:
        result = asyncio.run(run_research(request, settings=cfg, on_progress=on_progress))
    except KeyboardInterrupt:
        console.print("[yellow]Research cancelled[/yellow]")
        sys.exit(130)

    if not result.ok:
        console.print(f"[red]Research Error:[/red] {result.error.message}")
        if ctx.obj and ctx.obj.get("debug") and result.error.details:
            console.print(result.error.details)
        sys.exit(1)

    if as_json:
        click.echo(result.report.model_dump_json(indent=2))
    else:
        _display_report(result.report)


@main.command()
@click.pass_context
def config(ctx):
    """Show current configuration and missing credentials."""
    console.print("[blue]revintel Configuration[/blue]")
    missing = validate_required_settings()
    if missing:
        console.print("[red]⚠️  Configuration Issues:[/red]")
        for item in missing:
            console.print(f"  • Missing: {item}")
        console.print()
    else:
        console.print("[green]✅ Configuration Valid[/green]")
        console.print()

    print_configuration_summary()


def _display_report(report: IntelligenceReport) -> None:
    """Render a report as rich tables."""
    profile = report.company_profile

    table = Table(title=f"Company Profile: {profile.confirmed_name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for label, value in (
        ("Revenue", profile.revenue),
        ("Employees", profile.employee_count),
        ("Headquarters", profile.headquarters),
        ("Founded", profile.founded_year),
        ("Ownership", profile.ownership_type),
        ("Parent", profile.parent_company),
        ("Investors", ", ".join(profile.investors)),
        ("Industry", profile.industry),
        ("Business Model", profile.business_model),
    ):
        table.add_row(label, value or "-")
    console.print(table)

    if report.recent_signals:
        signals = Table(title="Recent Signals")
        signals.add_column("Type", style="magenta")
        signals.add_column("Date")
        signals.add_column("Headline")
        signals.add_column("Intent", justify="center")
        for signal in report.recent_signals:
            signals.add_row(
                signal.type, signal.date or "-", signal.headline, "✓" if signal.is_intent_signal else ""
            )
        console.print(signals)

    if report.intent_signals:
        console.print("\n[bold]Intent Signals:[/bold]")
        for intent in report.intent_signals:
            console.print(f"  • [{intent.fit_score}] {intent.signal_type}: {intent.description}")

    hypothesis = report.hypothesis
    console.print(f"\n[bold]Hypothesis[/bold] ({hypothesis.confidence} confidence)")
    console.print(f"  {hypothesis.primary_hypothesis}")
    for point in hypothesis.supporting_evidence:
        console.print(f"  • {point}")

    angles = Table(title="Persona Angles")
    angles.add_column("Persona", style="cyan")
    angles.add_column("Hook")
    angles.add_column("Question")
    for key, name in PERSONA_DISPLAY_NAMES.items():
        angle = getattr(report.persona_angles, key)
        angles.add_row(name, angle.hook, angle.question)
    console.print(angles)

    priority = report.outreach_priority
    personas = ", ".join(PERSONA_DISPLAY_NAMES.get(p, p) for p in priority.recommended_personas)
    console.print(f"\n[bold]Outreach:[/bold] {priority.urgency} urgency, start with {personas or '-'}")
    console.print(f"  {priority.urgency_reason}")
    for caution in priority.cautions:
        console.print(f"  [yellow]⚠ {caution}[/yellow]")

    if report.research_gaps:
        console.print("\n[bold]Research Gaps:[/bold]")
        for gap in report.research_gaps:
            console.print(f"  • {gap}")

    meta = report.metadata
    console.print(
        f"\n[dim]{meta.searches_performed} searches, {meta.sources_cited} sources, "
        f"{meta.models_used.search} / {meta.models_used.synthesis}, "
        f"{meta.execution_time_ms / 1000:.1f}s, ~${meta.estimated_cost:.4f}[/dim]"
    )


if __name__ == "__main__":
    main()
