"""Paper subcommand: run one paper trading step against the last scan."""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from famscan.cli.render import fmt_usd
from famscan.runner import load_prices, load_ranked_families, run_paper_step

app = typer.Typer(help="Paper trading on the last scan's ranked families")


@app.command("run")
def run(ctx: typer.Context) -> None:
    """Mark, exit and enter paper positions using families.json and prices_raw.json."""
    settings = ctx.obj["settings"]
    families = load_ranked_families(settings)
    prices = load_prices(settings)
    if not families and not len(prices):
        typer.echo("No scan outputs found. Run: famscan scan")
        raise typer.Exit(1)
    result = run_paper_step(settings, families, prices, datetime.now(timezone.utc))
    s = result.summary
    typer.echo("Paper trading (simulation only)")
    typer.echo(f"ts: {s.ts.isoformat()}")
    typer.echo(
        f"positions={s.open_positions} exposure={fmt_usd(s.exposure_usd)} cash={fmt_usd(s.bankroll_cash_usd)}"
    )
    typer.echo(
        f"entered={s.entered} exited={s.exited} marked={s.marked} "
        f"realizedPnL={fmt_usd(s.realized_pnl_usd)} unrealizedPnL={fmt_usd(s.unrealized_pnl_usd)}"
    )
