#!/usr/bin/env python3
"""
Ad Intelligence - Main CLI Entry Point

Usage:
    python main.py search "HubSpot" --domain hubspot.com     # Search all sources
    python main.py search "Funnel.io" --include-secondary    # Also pull secondary-source ads
    python main.py search "Nike" --json --save               # JSON output, save run history
    python main.py --init-db                                 # Create run history tables
"""

import asyncio
import json
import sys
import click

from adintel.models import AdSearchRequest, RelevanceCategory, init_db
from adintel.sources.orchestrator import AdIntelligenceOrchestrator
from adintel.utils.logger import get_logger

logger = get_logger("main")

HEADLINE_WIDTH = 50
ADVERTISER_WIDTH = 24


@click.group(invoke_without_command=True)
@click.option("--init-db", "initialize_db", is_flag=True, help="Initialize database tables")
@click.pass_context
def cli(ctx, initialize_db: bool):
    """Multi-source ad intelligence CLI."""
    if initialize_db:
        click.echo("Initializing database tables...")
        init_db()
        click.echo("Database initialized successfully!")
        return

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument("company")
@click.option("--domain", type=str, help="Company domain (guessed from the name if omitted)")
@click.option("--country", type=str, help="Country filter for Meta (default from config)")
@click.option("--limit", type=int, help="Max ads per source")
@click.option("--enrich/--no-enrich", default=True, help="Enrich ads with secondary-source intelligence")
@click.option("--include-secondary", is_flag=True, help="Also return ads found only in the secondary source")
@click.option("--max-enrichments", type=int, help="Cap on ads to enrich")
@click.option("--min-score", type=int, help="Drop ads below this relevance score")
@click.option("--exclude", "exclude_categories", multiple=True,
              type=click.Choice([c.value for c in RelevanceCategory]),
              help="Drop ads in this relevance category (repeatable)")
@click.option("--date-from", type=str, help="Secondary-source window start (YYYY-MM-DD)")
@click.option("--date-to", type=str, help="Secondary-source window end (YYYY-MM-DD)")
@click.option("--skip-analytics", is_flag=True, help="Skip the brand analytics query")
@click.option("--json", "as_json", is_flag=True, help="Print the full result as JSON")
@click.option("--save", is_flag=True, help="Save the run to the history database")
def search(
    company: str,
    domain: str,
    country: str,
    limit: int,
    enrich: bool,
    include_secondary: bool,
    max_enrichments: int,
    min_score: int,
    exclude_categories: tuple,
    date_from: str,
    date_to: str,
    skip_analytics: bool,
    as_json: bool,
    save: bool,
):
    """Search ad libraries for COMPANY and rank the results."""
    request = AdSearchRequest(
        query=company,
        domain=domain,
        country=country,
        limit=limit,
        enrich=enrich,
        include_secondary=include_secondary,
        max_enrichments=max_enrichments,
        date_from=date_from,
        date_to=date_to,
        skip_analytics=skip_analytics,
        min_relevance_score=min_score,
        exclude_categories=tuple(RelevanceCategory(c) for c in exclude_categories),
    )

    if save:
        init_db()

    orchestrator = AdIntelligenceOrchestrator(save_runs=save)

    try:
        result = asyncio.run(_run(orchestrator, request))
    except KeyboardInterrupt:
        click.echo("\nSearch interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error("search_failed", error=str(e))
        click.echo(f"Search failed: {e}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        _print_result(company, result)

    sys.exit(0)


async def _run(orchestrator: AdIntelligenceOrchestrator, request: AdSearchRequest):
    await orchestrator.start()
    try:
        return await orchestrator.run(request)
    finally:
        await orchestrator.stop()


def _print_result(company: str, result):
    click.echo("\n" + "=" * 100)
    click.echo(f"  AD INTELLIGENCE: {company}")
    click.echo("=" * 100)

    click.echo(f"\n  {'Source':<12} {'Ads':>6} {'Total':>8} {'ms':>8}  Status")
    click.echo("  " + "-" * 60)
    for source in result.primary.results:
        status = "ok" if source.success else f"FAILED: {source.error}"
        click.echo(
            f"  {source.platform.value:<12} {len(source.creatives):>6} "
            f"{source.total_count:>8} {source.duration_ms:>8}  {status}"
        )

    if result.enrichment:
        e = result.enrichment
        if e.error:
            click.echo(f"\n  Enrichment failed: {e.error}")
        elif e.skipped_reason:
            click.echo(f"\n  Enrichment skipped: {e.skipped_reason}")
        else:
            click.echo(f"\n  Enriched {e.enriched_count} ads ({e.credits_used:g} credits)")

    if result.secondary_source:
        s = result.secondary_source
        click.echo(f"  Secondary source: {s.total_ads} ads, {s.unique_ads} unique")

    click.echo(f"\n  {'Score':>5}  {'Category':<16} {'Source':<10} {'Platform':<9} {'Advertiser':<{ADVERTISER_WIDTH}} Headline")
    click.echo("  " + "-" * 96)
    for creative in result.creatives:
        relevance = creative.relevance
        advertiser = (creative.advertiser or "")[:ADVERTISER_WIDTH]
        headline = (creative.headline or "")[:HEADLINE_WIDTH]
        click.echo(
            f"  {relevance.score:>5}  {relevance.category.value:<16} {creative.source.value:<10} "
            f"{creative.platform.value:<9} {advertiser:<{ADVERTISER_WIDTH}} {headline}"
        )

    costs = result.costs
    click.echo(f"\n  Ads returned: {len(result.creatives)}  |  Has creatives: {result.has_creatives}")
    click.echo(
        f"  Cost: primary ${costs.primary_total:.4f} + secondary ${costs.secondary:.4f} "
        f"= ${costs.total:.4f} USD"
    )
    click.echo(f"  Request id: {result.request_id}  |  {result.duration_ms} ms")
    click.echo("=" * 100 + "\n")


if __name__ == "__main__":
    cli()
