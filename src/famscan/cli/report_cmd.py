"""Report command: recurrence and persistence over the evaluation log."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import typer

from famscan.report import aggregate_recurring, avg_score_by_type, group_by_scan, persistence_hours
from famscan.storage.db import get_connection, init_schema
from famscan.storage.family_log import read_rows_since


def report(
    ctx: typer.Context,
    days: float = typer.Option(7.0, "--days", "-d", help="Window size in days"),
    top_n: int = typer.Option(20, "--top-n", "-n", help="Top families per scan for persistence"),
    threshold: float = typer.Option(0.25, "--threshold", "-t", help="Score below which an edge has ended"),
) -> None:
    """Summarize recurring families, average score per type and top-edge persistence."""
    settings = ctx.obj["settings"]
    since = datetime.now(timezone.utc) - timedelta(days=days)
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        rows = read_rows_since(conn, since)
    finally:
        conn.close()

    typer.echo(f"DB: {settings.db_path}")
    typer.echo(f"Window: last {days:g} day(s) | rows: {len(rows)}")
    typer.echo("")
    typer.echo("Top recurring families:")
    for r in aggregate_recurring(rows):
        typer.echo(
            f"- seen={r.count} | avg={r.avg_score:.3f} | max={r.max_score:.3f} | "
            f"{r.family_type.upper()} | {r.title} | {r.family_id}"
        )
    typer.echo("")
    typer.echo("Average score by family_type:")
    for t in avg_score_by_type(rows):
        typer.echo(f"- {t.family_type}: avg={t.avg:.3f} (n={t.n})")
    typer.echo("")
    p = persistence_hours(group_by_scan(rows), top_n=top_n, threshold=threshold)
    typer.echo("Top-edge persistence:")
    typer.echo(f"- definition: for each scan's top {top_n}, time until score < {threshold:g} or disappears")
    typer.echo(f"- samples: {p.samples}")
    typer.echo(f"- avg: {p.avg_hours:.2f} hours | median: {p.median_hours:.2f} hours")
