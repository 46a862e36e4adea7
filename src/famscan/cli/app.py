"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from famscan.config import get_settings
from famscan.config.settings import configure_logging

app = typer.Typer(
    name="famscan",
    help="famscan - Prediction market family scanner: bucket ranges, anomaly scores, paper trading.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
) -> None:
    """Configure logging and store options in context."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {"settings": settings, "config_dir": config_dir, "profile": profile}


# Subcommands registered from other modules
from famscan.cli import log, paper, report_cmd, scan, status  # noqa: E402

app.command("scan")(scan.scan)
app.command("status")(status.status)
app.command("report")(report_cmd.report)
app.add_typer(paper.app, name="paper")
app.add_typer(log.app, name="log")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
