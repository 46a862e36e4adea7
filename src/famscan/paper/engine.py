"""Paper trading step: mark open positions, apply exit rules, enter from top-ranked families.

Only long "Yes" entries are simulated. Missing prices never raise; the affected position or
candidate is simply skipped for this step.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

import structlog

from famscan.detect.anomalies import is_valid_prob
from famscan.models.family import ScoredFamily
from famscan.paper.portfolio import PaperConfig, PaperEvent, PaperPosition, PaperRunSummary, PaperState
from famscan.paper.pricing import PricesSnapshot

log = structlog.get_logger(__name__)

ENTRY_OUTCOME = "Yes"


@dataclass(frozen=True)
class TradeTarget:
    market_id: str
    outcome: str = ENTRY_OUTCOME


@dataclass(frozen=True)
class PaperRunResult:
    state: PaperState
    events: tuple[PaperEvent, ...]
    summary: PaperRunSummary


def pick_trade_target(family: ScoredFamily) -> TradeTarget | None:
    """Bucket: first label of the best cluster (else first bucket). Single: its own market. Multi: none."""
    if family.family_type == "bucket" and family.buckets:
        best = family.features.best_cluster if family.features else None
        if best is not None and best.labels:
            bucket = next((b for b in family.buckets if b.label == best.labels[0]), None)
        else:
            bucket = family.buckets[0]
        return TradeTarget(market_id=bucket.market_id) if bucket else None
    if family.family_type == "single" and family.single is not None:
        return TradeTarget(market_id=family.single.market_id)
    return None


def run_paper_trade(
    state: PaperState,
    families: Iterable[ScoredFamily],
    prices: PricesSnapshot,
    config: PaperConfig,
    now: datetime,
) -> PaperRunResult:
    """Advance the paper portfolio by one scan. The input state is not modified."""
    positions = [_copy_position(p) for p in state.positions]
    cash = state.bankroll_cash_usd
    last_entry = dict(state.last_entry_by_family)
    events: list[PaperEvent] = []

    marked = 0
    for pos in positions:
        px = prices.get(pos.market_id, pos.outcome)
        if px is None:
            continue
        pos.last_mark_ts = now
        pos.last_mark_price = px
        marked += 1
        events.append(
            PaperEvent(
                ts=now,
                type="MARK",
                position_id=pos.id,
                market_id=pos.market_id,
                outcome=pos.outcome,
                price=px,
                unrealized_pnl_usd=pos.unrealized_pnl(px),
            )
        )

    remaining: list[PaperPosition] = []
    realized = 0.0
    exited = 0
    for pos in positions:
        px = prices.get(pos.market_id, pos.outcome)
        reason = _exit_reason(pos, px, config, now) if px is not None else None
        if px is None or reason is None:
            remaining.append(pos)
            continue
        exit_usd = pos.shares * px
        pnl = exit_usd - pos.entry_usd
        realized += pnl
        cash += exit_usd
        exited += 1
        events.append(
            PaperEvent(
                ts=now,
                type="EXIT",
                position_id=pos.id,
                family_id=pos.family_id,
                market_id=pos.market_id,
                outcome=pos.outcome,
                price=px,
                shares=pos.shares,
                usd=exit_usd,
                realized_pnl_usd=pnl,
                reason=reason,
                hold_hours=pos.hold_hours(now),
            )
        )
        log.info("paper_exit", position_id=pos.id, reason=reason, pnl=round(pnl, 4))
    positions = remaining

    nav = cash + sum(p.entry_usd for p in positions)
    max_exposure = nav * config.max_exposure_pct
    candidates = sorted(
        (f for f in families if f.opportunity_score > 0),
        key=lambda f: f.opportunity_score,
        reverse=True,
    )
    entries: list[PaperEvent] = []
    for f in candidates:
        if len(entries) >= config.max_new_trades_per_scan:
            break
        last = last_entry.get(f.family_id)
        if last is not None and (now - last).total_seconds() / 3600.0 < config.cooldown_hours:
            continue
        target = pick_trade_target(f)
        if target is None:
            continue
        px = prices.get(target.market_id, target.outcome)
        if not is_valid_prob(px):
            continue
        if sum(p.entry_usd for p in positions) >= max_exposure:
            continue
        trade_usd = min(config.max_trade_usd, cash)
        if trade_usd <= 0:
            break
        shares = trade_usd / px
        pos = PaperPosition(
            id=str(uuid.uuid4()),
            family_id=f.family_id,
            family_type=f.family_type,
            market_id=target.market_id,
            outcome=target.outcome,
            entry_ts=now,
            entry_price=px,
            shares=shares,
            entry_usd=trade_usd,
        )
        positions.append(pos)
        cash -= trade_usd
        last_entry[f.family_id] = now
        entries.append(
            PaperEvent(
                ts=now,
                type="ENTRY",
                position_id=pos.id,
                family_id=f.family_id,
                market_id=pos.market_id,
                outcome=pos.outcome,
                price=px,
                shares=shares,
                usd=trade_usd,
                reason=f"topFamily score={f.opportunity_score:.3f} title={f.title}",
            )
        )
        log.info("paper_entry", family_id=f.family_id, market_id=pos.market_id, price=px, usd=trade_usd)
    events.extend(entries)

    new_state = PaperState(
        bankroll_cash_usd=cash,
        updated_at=now,
        positions=positions,
        last_entry_by_family=last_entry,
    )
    unrealized = 0.0
    for pos in positions:
        px = prices.get(pos.market_id, pos.outcome)
        if px is not None:
            unrealized += pos.unrealized_pnl(px)
    summary = PaperRunSummary(
        ts=now,
        open_positions=len(positions),
        exposure_usd=new_state.exposure_usd,
        realized_pnl_usd=realized,
        unrealized_pnl_usd=unrealized,
        bankroll_cash_usd=cash,
        entered=len(entries),
        exited=exited,
        marked=marked,
        new_trades=tuple(entries),
        positions=tuple(positions),
    )
    return PaperRunResult(state=new_state, events=tuple(events), summary=summary)


def _exit_reason(pos: PaperPosition, px: float, config: PaperConfig, now: datetime) -> str | None:
    move = px - pos.entry_price
    if move >= config.take_profit_move:
        return "TP"
    if move <= config.stop_loss_move:
        return "SL"
    if pos.hold_hours(now) >= config.max_hold_hours:
        return "MAX_HOLD"
    return None


def _copy_position(p: PaperPosition) -> PaperPosition:
    return PaperPosition(**vars(p))
