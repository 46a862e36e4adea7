"""Status command: last heartbeat and dashboard, read back from disk."""

from __future__ import annotations

import typer

from famscan.cli.render import fmt_num, fmt_usd, paper_line, render_table, top_families_table, truncate
from famscan.storage.artifacts import read_json_file


def status(ctx: typer.Context) -> None:
    """Show the last scan heartbeat, top families and paper portfolio."""
    settings = ctx.obj["settings"]
    heartbeat = read_json_file(settings.heartbeat_path)
    dashboard = read_json_file(settings.dashboard_path)

    typer.echo(f"last_scan: {settings.heartbeat_path}")
    if not isinstance(heartbeat, dict):
        typer.echo("missing last_scan.json (run scan first)")
    else:
        typer.echo(
            f"ts={heartbeat.get('timestamp')} fetched={heartbeat.get('fetched')} "
            f"normalized={heartbeat.get('normalized')} families={heartbeat.get('families')} "
            f"buckets={heartbeat.get('bucket_families')} topScore={fmt_num(heartbeat.get('top_score'), 3)}"
        )

    typer.echo("")
    typer.echo(f"dashboard: {settings.dashboard_path}")
    if not isinstance(dashboard, dict):
        typer.echo("missing dashboard.json (run scan first)")
        return
    typer.echo(f"ts={dashboard.get('timestamp')}")
    scan_info = dashboard.get("scan") or {}
    if scan_info:
        typer.echo(
            f"scan: fetched={scan_info.get('fetched')} parsed={scan_info.get('parsed')} "
            f"normalized={scan_info.get('normalized')} families={scan_info.get('families')} "
            f"bucket_families={scan_info.get('bucket_families')} stop_reason={scan_info.get('stop_reason')}"
        )
    for w in dashboard.get("warnings") or []:
        typer.echo(f"warning: {w}")

    top = dashboard.get("top_families")
    top = top[:10] if isinstance(top, list) else []
    typer.echo("")
    typer.echo("Top 10 (dashboard):")
    typer.echo(top_families_table(top))

    paper = dashboard.get("paper")
    if isinstance(paper, dict):
        typer.echo("")
        typer.echo("Paper:")
        typer.echo(paper_line(paper))
        open_positions = paper.get("open_positions") or []
        if open_positions:
            rows = [["id", "family", "market", "outcome", "entry", "entryPx", "markPx", "usd"]]
            for p in open_positions[:25]:
                rows.append(
                    [
                        truncate(str(p.get("position_id", "")), 12),
                        truncate(str(p.get("family_id", "")), 22),
                        truncate(str(p.get("market_id", "")), 10),
                        str(p.get("outcome", "")),
                        truncate(str(p.get("entry_ts", "")), 19),
                        fmt_num(p.get("entry_price"), 4),
                        fmt_num(p.get("last_mark_price"), 4),
                        fmt_usd(p.get("entry_usd")),
                    ]
                )
            typer.echo("")
            typer.echo("Open positions:")
            typer.echo(render_table(rows))
