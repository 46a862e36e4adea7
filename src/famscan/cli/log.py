"""Log subcommand: export, stats."""

from __future__ import annotations

import typer

from famscan.storage.db import get_connection, init_schema
from famscan.storage.export import export_family_scores_to_parquet
from famscan.storage.family_log import log_stats

app = typer.Typer(help="Family evaluation log export and statistics")


@app.command("export")
def export(
    ctx: typer.Context,
    family_type: str | None = typer.Option(None, "--type", "-t", help="Filter by family type"),
    output: str = typer.Option("family_scores.parquet", "--output", "-o", help="Output path"),
) -> None:
    """Export the evaluation log to Parquet."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        try:
            count = export_family_scores_to_parquet(conn, output, family_type=family_type)
        except ValueError as e:
            typer.echo(str(e))
            raise typer.Exit(1)
        typer.echo(f"Exported {count} rows to {output}")
    finally:
        conn.close()


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Show evaluation log statistics (rows, scans, time range, by type)."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        s = log_stats(conn)
        typer.echo(f"Total rows: {s['total_rows']}")
        typer.echo(f"Scans: {s['scans']}")
        typer.echo(f"Min ts: {s.get('min_ts')}")
        typer.echo(f"Max ts: {s.get('max_ts')}")
        if s.get("by_type"):
            typer.echo("By family type:")
            for row in s["by_type"]:
                typer.echo(f"  {row['family_type']}  {row['count']}")
    finally:
        conn.close()
