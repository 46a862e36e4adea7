"""Outcome price lookups for marking and entering paper positions."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from famscan.models.market import NormalizedMarket


class PricesSnapshot:
    """market_id -> outcome -> price. Lookups never raise; missing prices are None."""

    def __init__(self, prices: Mapping[str, Mapping[str, float | None]] | None = None) -> None:
        self._prices: dict[str, dict[str, float | None]] = {
            mid: dict(outcomes) for mid, outcomes in (prices or {}).items()
        }

    @classmethod
    def from_markets(cls, markets: Iterable[NormalizedMarket]) -> PricesSnapshot:
        return cls({m.market_id: m.prices for m in markets if m.outcomes})

    @classmethod
    def from_payload(cls, payload: Any) -> PricesSnapshot:
        """Rebuild from a prices_raw.json document ({"prices": [{market_id, outcomes, outcome_prices}]})."""
        rows = payload.get("prices") if isinstance(payload, Mapping) else None
        prices: dict[str, dict[str, float | None]] = {}
        for row in rows if isinstance(rows, list) else []:
            if not isinstance(row, Mapping):
                continue
            market_id = row.get("market_id")
            outcomes = row.get("outcomes")
            values = row.get("outcome_prices")
            if not isinstance(market_id, str) or not isinstance(outcomes, list) or not isinstance(values, list):
                continue
            by_outcome: dict[str, float | None] = {}
            for i, name in enumerate(outcomes):
                if not isinstance(name, str):
                    continue
                p = values[i] if i < len(values) else None
                ok = isinstance(p, (int, float)) and not isinstance(p, bool) and math.isfinite(p)
                by_outcome[name] = float(p) if ok else None
            prices[market_id] = by_outcome
        return cls(prices)

    def get(self, market_id: str, outcome: str) -> float | None:
        p = self._prices.get(market_id, {}).get(outcome)
        return p if p is not None and math.isfinite(p) else None

    def __len__(self) -> int:
        return len(self._prices)
