#!/usr/bin/env python3
"""
View saved search runs and source failures.

Usage:
    python scripts/view_runs.py
    python scripts/view_runs.py --runs 10
    python scripts/view_runs.py --query hubspot
    python scripts/view_runs.py --failures
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import click
from sqlalchemy import func

from adintel.models import SessionLocal, SearchRun, SourceFailure


@click.command()
@click.option("--runs", type=int, default=5, help="Number of recent runs to show")
@click.option("--query", type=str, help="Only runs whose query contains this text")
@click.option("--failures", is_flag=True, help="Show recent source failures")
def main(runs: int, query: str, failures: bool):
    """View search run history."""

    db = SessionLocal()

    try:
        if failures:
            show_failures(db, runs)
        else:
            show_runs(db, runs, query)
    finally:
        db.close()


def show_runs(db, limit: int, query_text: str = None):
    """Show recent search runs."""
    click.echo("\n=== Recent Search Runs ===\n")

    query = db.query(SearchRun)
    if query_text:
        query = query.filter(SearchRun.query.ilike(f"%{query_text}%"))
    search_runs = query.order_by(SearchRun.started_at.desc()).limit(limit).all()

    if not search_runs:
        click.echo("No search runs found.")
        return

    for run in search_runs:
        duration = f" ({run.duration_seconds:.1f}s)" if run.duration_seconds is not None else ""

        click.echo(f"Run #{run.id} \"{run.query}\" [{run.request_id}] - {run.status}{duration}")
        click.echo(f"  Started: {run.started_at.strftime('%Y-%m-%d %H:%M:%S')}")
        if run.domain:
            click.echo(f"  Domain: {run.domain}")
        click.echo(f"  Sources: {run.sources_total} (failed: {run.sources_failed})")
        click.echo(f"  Ads: found={run.ads_found}, returned={run.ads_returned}, enriched={run.ads_enriched}, secondary={run.secondary_ads}")
        click.echo(f"  Cost: ${run.total_cost or 0:.4f}")
        click.echo("")

    totals = db.query(
        func.count(SearchRun.id),
        func.sum(SearchRun.total_cost),
    ).one()
    click.echo(f"Total runs: {totals[0]}  |  Total cost: ${totals[1] or 0:.4f}")


def show_failures(db, limit: int):
    """Show recent source failures."""
    click.echo("\n=== Recent Source Failures ===\n")

    failures = db.query(SourceFailure).order_by(SourceFailure.created_at.desc()).limit(limit).all()

    if not failures:
        click.echo("No source failures found.")
        return

    for failure in failures:
        click.echo(f"[{failure.created_at.strftime('%Y-%m-%d %H:%M')}] run #{failure.search_run_id} {failure.platform}")
        click.echo(f"  Type: {failure.error_type}")
        click.echo(f"  Message: {(failure.error_message or '')[:200]}")
        click.echo("")

    by_platform = (
        db.query(SourceFailure.platform, func.count(SourceFailure.id))
        .group_by(SourceFailure.platform)
        .all()
    )
    click.echo("Failures by platform: " + ", ".join(f"{p}={n}" for p, n in by_platform))


if __name__ == "__main__":
    main()
