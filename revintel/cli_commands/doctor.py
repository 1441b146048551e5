"""
"Doctor" command: consolidated config and provider diagnostics.

Runs a series of checks and prints a concise, friendly report:
 - Config summary and required keys
 - Tavily reachability (with --probe)
 - OpenAI reachability (with --probe)
"""

from __future__ import annotations

import asyncio

import click

from revintel.core.config import (
    build_research_context,
    get_settings,
    print_configuration_summary,
    validate_required_settings,
)
from revintel.core.exceptions import RevIntelError
from revintel.intelligence.llm_client import OpenAIChatProvider
from revintel.intelligence.search_client import TavilySearchClient


async def _probe_tavily(api_key: str, timeout: float) -> str:
    hits = await TavilySearchClient(api_key, timeout=timeout).search("OpenAI company", max_results=1)
    return f"{len(hits)} result(s)"


async def _probe_openai(api_key: str, model: str) -> str:
    provider = OpenAIChatProvider(api_key, timeout=30)
    result = await provider.complete(
        model=model,
        messages=[{"role": "user", "content": "Reply with OK."}],
    )
    return f"{result.model} answered ({result.output_tokens} tokens)"


@click.command()
@click.option("--probe", is_flag=True, help="Make one live call to each configured provider")
def doctor(probe: bool):
    """Run revintel diagnostics and print a summary report."""
    click.echo("revintel Doctor")
    click.echo("=" * 40)

    print_configuration_summary()

    missing = validate_required_settings()
    if missing:
        click.echo("\nMissing configuration:")
        for item in missing:
            click.echo(f"  ✗ {item}")
    else:
        click.echo("\n✓ Required credentials present")

    if not probe:
        click.echo("\nRun with --probe to test provider connectivity.")
        return

    cfg = get_settings()
    context = build_research_context(cfg)
    credentials = context.credentials

    if cfg.search.enabled and credentials.tavily_api_key:
        try:
            outcome = asyncio.run(
                _probe_tavily(credentials.tavily_api_key, context.search_timeout_seconds)
            )
            click.echo(f"✓ Tavily healthy: {outcome}")
        except RevIntelError as e:
            click.echo(f"✗ Tavily unhealthy: {e.message}")
    else:
        click.echo("- Tavily probe skipped")

    if credentials.openai_api_key:
        try:
            outcome = asyncio.run(
                _probe_openai(credentials.openai_api_key, context.synthesis_model_for("standard"))
            )
            click.echo(f"✓ OpenAI healthy: {outcome}")
        except RevIntelError as e:
            click.echo(f"✗ OpenAI unhealthy: {e.message}")
    else:
        click.echo("- OpenAI probe skipped")
