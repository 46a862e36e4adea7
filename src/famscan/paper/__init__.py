"""Paper trading on top of ranked families."""

from famscan.paper.engine import PaperRunResult, TradeTarget, pick_trade_target, run_paper_trade
from famscan.paper.portfolio import PaperConfig, PaperEvent, PaperPosition, PaperRunSummary, PaperState
from famscan.paper.pricing import PricesSnapshot

__all__ = [
    "PaperConfig",
    "PaperEvent",
    "PaperPosition",
    "PaperRunResult",
    "PaperRunSummary",
    "PaperState",
    "PricesSnapshot",
    "TradeTarget",
    "pick_trade_target",
    "run_paper_trade",
]
