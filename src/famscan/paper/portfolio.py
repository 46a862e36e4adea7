"""Paper positions, bankroll state and trade events."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Literal

EventType = Literal["MARK", "ENTRY", "EXIT"]


@dataclass(frozen=True)
class PaperConfig:
    """Risk limits and exit rules for the paper trader."""

    bankroll_start_usd: float = 500.0
    max_new_trades_per_scan: int = 2
    max_trade_usd: float = 25.0
    max_exposure_pct: float = 0.3  # of NAV (cash + exposure)
    cooldown_hours: float = 6.0
    take_profit_move: float = 0.02
    stop_loss_move: float = -0.02
    max_hold_hours: float = 24.0


@dataclass
class PaperPosition:
    """Open long position in one outcome token (e.g. Yes)."""

    id: str
    family_id: str
    family_type: str
    market_id: str
    outcome: str
    entry_ts: datetime
    entry_price: float
    shares: float
    entry_usd: float
    last_mark_ts: datetime | None = None
    last_mark_price: float | None = None

    def unrealized_pnl(self, mark_price: float) -> float:
        return (mark_price - self.entry_price) * self.shares

    def hold_hours(self, now: datetime) -> float:
        return (now - self.entry_ts).total_seconds() / 3600.0


@dataclass
class PaperState:
    """Bankroll, open positions and per-family entry cooldowns."""

    bankroll_cash_usd: float
    updated_at: datetime | None = None
    positions: list[PaperPosition] = field(default_factory=list)
    last_entry_by_family: dict[str, datetime] = field(default_factory=dict)

    @classmethod
    def fresh(cls, config: PaperConfig, now: datetime | None = None) -> PaperState:
        return cls(bankroll_cash_usd=config.bankroll_start_usd, updated_at=now)

    @property
    def exposure_usd(self) -> float:
        return sum(p.entry_usd for p in self.positions)

    @property
    def nav_usd(self) -> float:
        return self.bankroll_cash_usd + self.exposure_usd


@dataclass(frozen=True)
class PaperEvent:
    """One row of the append-only paper trade log."""

    ts: datetime
    type: EventType
    position_id: str
    market_id: str
    outcome: str
    price: float
    family_id: str | None = None
    shares: float | None = None
    usd: float | None = None
    unrealized_pnl_usd: float | None = None
    realized_pnl_usd: float | None = None
    reason: str | None = None
    hold_hours: float | None = None

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["ts"] = self.ts.isoformat()
        return d


@dataclass(frozen=True)
class PaperRunSummary:
    """Outcome of one paper trading step."""

    ts: datetime
    open_positions: int
    exposure_usd: float
    realized_pnl_usd: float
    unrealized_pnl_usd: float
    bankroll_cash_usd: float
    entered: int
    exited: int
    marked: int
    new_trades: tuple[PaperEvent, ...] = ()
    positions: tuple[PaperPosition, ...] = ()

    def to_dashboard(self) -> dict[str, Any]:
        """Shape embedded in dashboard.json."""
        return {
            "bankroll_cash_usd": self.bankroll_cash_usd,
            "realized_pnl_usd": self.realized_pnl_usd,
            "unrealized_pnl_usd": self.unrealized_pnl_usd,
            "open_positions_count": self.open_positions,
            "exposure_usd": self.exposure_usd,
            "new_trades": [
                {
                    "position_id": e.position_id,
                    "family_id": e.family_id,
                    "market_id": e.market_id,
                    "outcome": e.outcome,
                    "usd": e.usd,
                    "price": e.price,
                    "reason": e.reason,
                }
                for e in self.new_trades
            ],
            "open_positions": [
                {
                    "position_id": p.id,
                    "family_id": p.family_id,
                    "market_id": p.market_id,
                    "outcome": p.outcome,
                    "entry_ts": p.entry_ts.isoformat(),
                    "entry_price": p.entry_price,
                    "entry_usd": p.entry_usd,
                    "last_mark_price": p.last_mark_price,
                }
                for p in self.positions
            ],
        }
