"""Scan command: fetch (or load) markets, run the core, persist outputs, print a summary."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import httpx
import structlog
import typer

from famscan.cli.render import fmt_num, paper_line, top_families_table
from famscan.ingestion.gamma import FetchResult, GammaClient, fetch_markets, load_markets_file
from famscan.runner import ScanAborted, ScanOutcome, run_scan

log = structlog.get_logger(__name__)


def scan(
    ctx: typer.Context,
    input_file: Path | None = typer.Option(
        None, "--input", "-i", help="Read raw markets from a JSON file instead of the Gamma API"
    ),
    paper: bool | None = typer.Option(
        None, "--paper/--no-paper", help="Run a paper trading step after the scan (default from config)"
    ),
) -> None:
    """Fetch active markets, build and score families, write the evaluation log and dashboard."""
    settings = ctx.obj["settings"]
    if input_file is not None:
        try:
            raw = load_markets_file(str(input_file))
        except (OSError, ValueError) as e:
            log.error("scan_input_failed", path=str(input_file), error=str(e))
            typer.echo(f"Cannot read {input_file}: {e}", err=True)
            raise typer.Exit(1)
        fetch = FetchResult(
            raw=raw,
            pages_fetched=1,
            stop_reason="short_page",
            fetched_at=datetime.now(timezone.utc),
            limit_per_page=settings.limit_per_page,
            max_pages=settings.max_pages,
            max_markets=settings.max_markets,
        )
    else:
        try:
            with GammaClient(settings.gamma_api_base, timeout=settings.gamma_timeout_sec) as client:
                fetch = fetch_markets(
                    client,
                    limit_per_page=settings.limit_per_page,
                    max_pages=settings.max_pages,
                    max_markets=settings.max_markets,
                )
        except (httpx.HTTPError, ValueError) as e:
            log.error("scan_fetch_failed", error=str(e))
            typer.echo(f"Fetch failed: {e}", err=True)
            raise typer.Exit(1)

    try:
        outcome = run_scan(settings, fetch, paper=settings.paper_enabled if paper is None else paper)
    except ScanAborted as e:
        typer.echo(f"FATAL: {e}", err=True)
        raise typer.Exit(e.exit_code)
    typer.echo(_summary(outcome, settings))


def _summary(outcome: ScanOutcome, settings) -> str:
    core = outcome.core
    scan_info = outcome.dashboard["scan"]
    lines = [
        "=== famscan scan ===",
        f"ts: {outcome.ts.isoformat()}",
        f"gamma: fetched={scan_info['fetched']} parsed={scan_info['parsed']} "
        f"normalized={scan_info['normalized']} pages={scan_info['pages_fetched']} "
        f"stop={scan_info['stop_reason']}",
        f"families={len(core.families)} buckets={scan_info['bucket_families']} "
        f"buckets(>=6 prices)={scan_info['bucket_families_with_6_valid_prices']} "
        f"ranked={len(core.ranked)} topScore={fmt_num(outcome.top_score, 3)}",
    ]
    for w in outcome.dashboard["warnings"]:
        lines.append(f"warning: {w}")
    lines.append(f"outputs: {settings.families_path} {settings.dashboard_path}")
    lines.append(f"heartbeat: {settings.heartbeat_path}")
    if "paper" in outcome.dashboard:
        lines.append(f"paper: {paper_line(outcome.dashboard['paper'])}")
    lines.append("")
    lines.append(f"Top {len(outcome.dashboard['top_families'])}:")
    lines.append(top_families_table(outcome.dashboard["top_families"]))
    return "\n".join(lines)
