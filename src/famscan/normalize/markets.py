"""Raw listing records -> canonical NormalizedMarket.

Gamma commonly returns `outcomes` and `outcomePrices` as JSON-encoded strings. For binary
markets the "Yes" price is the implied probability; without a recognizable "Yes" outcome the
first outcome's price is used.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from famscan.models.market import (
    EVENT_ID_ALIASES,
    ID_ALIASES,
    LIQUIDITY_ALIASES,
    OUTCOME_ALIASES,
    PRICE_ALIASES,
    TITLE_ALIASES,
    VOLUME_ALIASES,
    NormalizedMarket,
    NormalizeStats,
    RawMarketRecord,
)
from famscan.normalize.numbers import coerce_number, format_number

log = structlog.get_logger(__name__)

YES_NAMES = frozenset({"yes", "y", "true"})


def normalize_markets(
    records: Iterable[RawMarketRecord | Mapping[str, Any]],
) -> tuple[list[NormalizedMarket], NormalizeStats]:
    """Normalize a batch.

    Records without any identifier are dropped and only counted. A repeated market id keeps the
    first record; later ones are only counted as duplicates.
    """
    out: list[NormalizedMarket] = []
    input_markets = 0
    with_outcomes = 0
    with_prices = 0
    binary = 0
    multi = 0
    duplicates = 0
    seen: set[str] = set()

    for item in records:
        input_markets += 1
        record = item if isinstance(item, RawMarketRecord) else RawMarketRecord.from_payload(item)
        market = normalize_market(record)
        if market is None:
            continue
        if market.market_id in seen:
            duplicates += 1
            continue
        seen.add(market.market_id)
        if market.outcomes:
            with_outcomes += 1
        if market.outcomes and _has_any_price(record):
            with_prices += 1
        if len(market.outcomes) == 2:
            binary += 1
        elif len(market.outcomes) >= 3:
            multi += 1
        out.append(market)

    stats = NormalizeStats(
        input_markets=input_markets,
        kept_markets=len(out),
        markets_with_outcomes=with_outcomes,
        markets_with_prices=with_prices,
        binary_markets=binary,
        multi_outcome_markets=multi,
        duplicate_markets=duplicates,
    )
    log.debug("normalize_done", **stats.model_dump())
    return out, stats


def normalize_market(record: RawMarketRecord) -> NormalizedMarket | None:
    """Canonical market for one record, or None when no identifier can be derived."""
    market_id = _first_id(record.candidates(ID_ALIASES))
    if market_id is None:
        return None

    title = _first_text(record.candidates(TITLE_ALIASES)) or market_id
    event_id = _first_id(record.candidates(EVENT_ID_ALIASES))
    if event_id is None:
        first_event = record.first_event
        if isinstance(first_event, Mapping):
            event_id = stringify_id(first_event.get("id"))

    names = _first_string_list(record.candidates(OUTCOME_ALIASES))
    price_list = _first_number_list(record.candidates(PRICE_ALIASES))

    outcomes: list[str] = []
    prices: dict[str, float | None] = {}
    for i, name in enumerate(names):
        if name in prices:
            continue
        outcomes.append(name)
        prices[name] = price_list[i] if i < len(price_list) else None

    return NormalizedMarket(
        market_id=market_id,
        title=title,
        event_id=event_id,
        outcomes=tuple(outcomes),
        prices=prices,
        yes_price=derive_yes_price(outcomes, prices),
        liquidity=_first_number(record.candidates(LIQUIDITY_ALIASES)),
        volume=_first_number(record.candidates(VOLUME_ALIASES)),
    )


def derive_yes_price(outcomes: list[str], prices: Mapping[str, float | None]) -> float | None:
    if not outcomes:
        return None
    for name in outcomes:
        if name.strip().lower() in YES_NAMES:
            return prices.get(name)
    return prices.get(outcomes[0])


def stringify_id(value: Any) -> str | None:
    """Trimmed non-empty string or stringified finite number; anything else is None."""
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        try:
            return str(value)
        except ValueError:
            return None
    if isinstance(value, float) and coerce_number(value) is not None:
        return format_number(value)
    return None


def coerce_string_list(value: Any) -> list[str] | None:
    """Native list of strings, or a JSON string decoding to one."""
    if isinstance(value, str):
        value = _safe_json_loads(value)
    if isinstance(value, list) and all(isinstance(x, str) for x in value):
        return list(value)
    return None


def coerce_number_list(value: Any) -> list[float | None] | None:
    """List (native or JSON-encoded) with unparseable entries kept as None to preserve positions."""
    if isinstance(value, str):
        value = _safe_json_loads(value)
    if not isinstance(value, list):
        return None
    return [coerce_number(x) for x in value]


def _first_id(values: list[Any]) -> str | None:
    for v in values:
        sid = stringify_id(v)
        if sid is not None:
            return sid
    return None


def _first_text(values: list[Any]) -> str | None:
    for v in values:
        if isinstance(v, str) and v.strip():
            return v.strip()
    return None


def _first_string_list(values: list[Any]) -> list[str]:
    for v in values:
        names = coerce_string_list(v)
        if names is not None:
            return names
    return []


def _first_number_list(values: list[Any]) -> list[float | None]:
    for v in values:
        nums = coerce_number_list(v)
        if nums is not None and any(n is not None for n in nums):
            return nums
    return []


def _first_number(values: list[Any]) -> float | None:
    for v in values:
        n = coerce_number(v)
        if n is not None:
            return n
    return None


def _has_any_price(record: RawMarketRecord) -> bool:
    return any(n is not None for n in _first_number_list(record.candidates(PRICE_ALIASES)))


def _safe_json_loads(s: str) -> Any:
    try:
        return json.loads(s)
    except (ValueError, RecursionError):
        return None
