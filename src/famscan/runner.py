"""Scan runner: fetched batch -> core -> evaluation log, JSON artifacts, optional paper step."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

from famscan.config.settings import Settings
from famscan.ingestion.gamma import FetchResult
from famscan.models import ScoredFamily
from famscan.paper.engine import PaperRunResult, run_paper_trade
from famscan.paper.portfolio import PaperRunSummary
from famscan.paper.pricing import PricesSnapshot
from famscan.paper.storage import append_paper_events, load_paper_state, save_paper_state
from famscan.pipeline import CoreResult, run_core
from famscan.storage import artifacts
from famscan.storage.db import get_connection, init_schema
from famscan.storage.family_log import append_family_rows, family_rows

log = structlog.get_logger(__name__)

EXIT_NO_MARKETS = 2
EXIT_NO_FAMILIES = 3


class ScanAborted(RuntimeError):
    """Scan stopped before writing outputs; exit_code is the CLI status."""

    def __init__(self, message: str, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code


@dataclass(frozen=True)
class ScanOutcome:
    ts: datetime
    fetch: FetchResult
    parsed: int
    core: CoreResult
    dashboard: dict[str, Any]
    rows_logged: int
    paper: PaperRunSummary | None = None

    @property
    def top_score(self) -> float | None:
        return self.core.ranked[0].opportunity_score if self.core.ranked else None


def run_scan(settings: Settings, fetch: FetchResult, paper: bool = False) -> ScanOutcome:
    """Run the core over one fetched batch and persist every scan output."""
    ts = fetch.fetched_at
    artifacts.write_json_file(settings.raw_markets_path, fetch.raw)
    records = [r for r in fetch.raw if isinstance(r, Mapping)]
    if not fetch.raw or not records:
        log.error("scan_no_markets", raw=len(fetch.raw), parsed=len(records))
        raise ScanAborted(
            f"zero markets fetched/parsed (raw={len(fetch.raw)}, parsed={len(records)})", EXIT_NO_MARKETS
        )

    core = run_core(records, gate=settings.quality_gate)
    artifacts.write_json_file(settings.prices_path, artifacts.prices_snapshot(core.markets, ts))
    if not core.families:
        log.error("scan_no_families", normalized=core.stats.kept_markets)
        raise ScanAborted("zero families built", EXIT_NO_FAMILIES)

    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        rows_logged = append_family_rows(conn, family_rows(core.scored, ts))
    finally:
        conn.close()

    artifacts.write_json_file(settings.families_path, artifacts.families_payload(core.ranked))
    artifacts.write_json_file(
        settings.heartbeat_path,
        artifacts.heartbeat(
            ts=ts,
            fetched=len(fetch.raw),
            parsed=len(records),
            normalized=core.stats.kept_markets,
            families=len(core.families),
            bucket_families=len(core.bucket_families),
            top_score=core.ranked[0].opportunity_score if core.ranked else None,
        ),
    )

    summary: PaperRunSummary | None = None
    if paper:
        try:
            result = run_paper_step(
                settings, core.ranked, PricesSnapshot.from_markets(core.markets), ts
            )
            summary = result.summary
        except Exception as e:  # paper step must not fail the scan
            log.warning("paper_step_failed", error=str(e))

    dashboard = artifacts.build_dashboard(
        ts=ts,
        scan={
            "fetched": len(fetch.raw),
            "parsed": len(records),
            "normalized": core.stats.kept_markets,
            "stop_reason": fetch.stop_reason,
            "pages_fetched": fetch.pages_fetched,
            "limits": {
                "limit_per_page": fetch.limit_per_page,
                "max_pages": fetch.max_pages,
                "max_markets": fetch.max_markets,
            },
        },
        scored=core.scored,
        ranked=core.ranked,
        top_n=settings.dashboard_top_n,
        paper=summary.to_dashboard() if summary else None,
    )
    artifacts.write_json_file(settings.dashboard_path, dashboard)
    log.info(
        "scan_done",
        markets=core.stats.kept_markets,
        families=len(core.families),
        ranked=len(core.ranked),
        rows_logged=rows_logged,
    )
    return ScanOutcome(
        ts=ts,
        fetch=fetch,
        parsed=len(records),
        core=core,
        dashboard=dashboard,
        rows_logged=rows_logged,
        paper=summary,
    )


def run_paper_step(
    settings: Settings,
    families: Iterable[ScoredFamily],
    prices: PricesSnapshot,
    now: datetime,
) -> PaperRunResult:
    """Load paper state, advance it one step, persist state and events."""
    config = settings.paper_config
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        state = load_paper_state(conn, config)
        result = run_paper_trade(state, list(families), prices, config, now)
        save_paper_state(conn, result.state)
        append_paper_events(conn, result.events)
    finally:
        conn.close()
    log.info(
        "paper_step_done",
        entered=result.summary.entered,
        exited=result.summary.exited,
        open_positions=result.summary.open_positions,
    )
    return result


def load_ranked_families(settings: Settings) -> list[ScoredFamily]:
    """Ranked families from the last scan's families.json (empty if missing or unreadable)."""
    payload = artifacts.read_json_file(settings.families_path)
    if not isinstance(payload, list):
        return []
    return [ScoredFamily.model_validate(item) for item in payload if isinstance(item, Mapping)]


def load_prices(settings: Settings) -> PricesSnapshot:
    return PricesSnapshot.from_payload(artifacts.read_json_file(settings.prices_path))
