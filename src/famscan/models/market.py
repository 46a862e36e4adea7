"""RawMarketRecord, NormalizedMarket - listing records before and after normalization."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Recognized upstream keys per logical field, in resolution order.
ID_ALIASES = ("id", "market_id", "conditionId", "condition_id")
TITLE_ALIASES = ("question", "title", "name", "slug")
EVENT_ID_ALIASES = ("event_id", "eventId")
EVENTS_KEY = "events"
OUTCOME_ALIASES = ("outcomes",)
PRICE_ALIASES = ("outcomePrices", "outcome_prices")
LIQUIDITY_ALIASES = ("liquidityNum", "liquidity", "liquidityClob")
VOLUME_ALIASES = ("volumeNum", "volume", "volumeClob")

RECOGNIZED_KEYS = frozenset(
    ID_ALIASES
    + TITLE_ALIASES
    + EVENT_ID_ALIASES
    + (EVENTS_KEY,)
    + OUTCOME_ALIASES
    + PRICE_ALIASES
    + LIQUIDITY_ALIASES
    + VOLUME_ALIASES
)


class RawMarketRecord(BaseModel):
    """Loosely-typed upstream market. Recognized keys are captured as-is; the rest lands in extra."""

    model_config = ConfigDict(frozen=True)

    captured: dict[str, Any] = Field(default_factory=dict)
    extra: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> RawMarketRecord:
        if not isinstance(payload, Mapping):
            return cls()
        captured: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in payload.items():
            if key in RECOGNIZED_KEYS:
                captured[key] = value
            else:
                extra[str(key)] = value
        return cls(captured=captured, extra=extra)

    def candidates(self, aliases: tuple[str, ...]) -> list[Any]:
        """Values present for the given aliases, in alias order (None values skipped)."""
        return [self.captured[a] for a in aliases if self.captured.get(a) is not None]

    @property
    def first_event(self) -> Any:
        events = self.captured.get(EVENTS_KEY)
        if isinstance(events, list) and events:
            return events[0]
        return None


class NormalizedMarket(BaseModel):
    """Canonical market shape. Every outcome has a price entry (possibly None)."""

    model_config = ConfigDict(frozen=True)

    market_id: str = Field(..., min_length=1)
    title: str
    event_id: str | None = None
    outcomes: tuple[str, ...] = ()
    prices: dict[str, float | None] = Field(default_factory=dict)
    yes_price: float | None = None
    liquidity: float | None = None
    volume: float | None = None


class NormalizeStats(BaseModel):
    """Counters emitted next to the normalized markets."""

    model_config = ConfigDict(frozen=True)

    input_markets: int = 0
    kept_markets: int = 0
    markets_with_outcomes: int = 0
    markets_with_prices: int = 0
    binary_markets: int = 0
    multi_outcome_markets: int = 0
    duplicate_markets: int = 0
