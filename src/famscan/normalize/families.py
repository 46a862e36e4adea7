"""Group normalized markets into bucket / multi / single families."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from famscan.models.family import (
    BucketOutcome,
    FamilyType,
    MarketFamily,
    MultiOutcome,
    RangeParseResult,
    SingleOutcome,
)
from famscan.models.market import NormalizedMarket
from famscan.normalize.ranges import parse_range_with_confidence, remove_first_range_for_grouping

log = structlog.get_logger(__name__)

MIN_BUCKET_CONFIDENCE = 2
MIN_BUCKETS = 2
SLUG_MAX_LEN = 160

_TYPE_ORDER: dict[FamilyType, int] = {"bucket": 0, "multi": 1, "single": 2}
_DASHES_RE = re.compile("[\u2012\u2013\u2014\u2212]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


@dataclass
class _BucketGroup:
    title: str
    event_id: str | None
    candidates: list[tuple[NormalizedMarket, RangeParseResult]] = field(default_factory=list)


def build_families(markets: Iterable[NormalizedMarket]) -> tuple[MarketFamily, ...]:
    """Bucket families from range-titled markets; everything else becomes multi or single."""
    markets = list(markets)
    groups: dict[str, _BucketGroup] = {}

    for m in markets:
        pr = parse_range_with_confidence(m.title)
        if pr is None:
            continue
        base = remove_first_range_for_grouping(m.title).base
        key = bucket_key(m.event_id, base)
        group = groups.setdefault(key, _BucketGroup(title=base, event_id=m.event_id))
        group.candidates.append((m, pr))

    families: list[MarketFamily] = []
    bucketed: set[str] = set()
    for key, group in groups.items():
        buckets = _qualified_buckets(group)
        if len(buckets) < MIN_BUCKETS:
            continue
        bucketed.update(b.market_id for b in buckets)
        families.append(
            MarketFamily(
                family_id=key,
                family_type="bucket",
                title=group.title,
                event_id=group.event_id,
                num_outcomes=len(buckets),
                buckets=buckets,
            )
        )

    for m in markets:
        if m.market_id in bucketed:
            continue
        families.append(_market_family(m))

    families.sort(key=lambda f: (_TYPE_ORDER[f.family_type], -f.num_outcomes))
    log.debug(
        "families_built",
        markets=len(markets),
        bucket_candidates=len(groups),
        families=len(families),
        bucket_families=sum(1 for f in families if f.family_type == "bucket"),
    )
    return tuple(families)


def bucket_key(event_id: str | None, base: str) -> str:
    prefix = f"event:{event_id}:" if event_id else ""
    return f"{prefix}bucket:{slugify(base)}"


def slugify(s: str) -> str:
    s = _DASHES_RE.sub("-", s.lower())
    return _NON_ALNUM_RE.sub("-", s).strip("-")[:SLUG_MAX_LEN]


def dominant_unit(units: Iterable[str]) -> tuple[str, int]:
    """Most common unit ('' for unit-less) and its count; ties go to the first seen."""
    counts: dict[str, int] = {}
    for u in units:
        counts[u] = counts.get(u, 0) + 1
    best, best_count = "", 0
    for u, c in counts.items():
        if c > best_count:
            best, best_count = u, c
    return best, best_count


def _qualified_buckets(group: _BucketGroup) -> tuple[BucketOutcome, ...]:
    """Unit-consistency bonus, confidence filter, then ascending range.low."""
    unit, count = dominant_unit(pr.range.unit or "" for _, pr in group.candidates)
    buckets = []
    for m, pr in group.candidates:
        bonus = 1 if (pr.range.unit or "") == unit and count >= 2 else 0
        confidence = pr.confidence + bonus
        if confidence < MIN_BUCKET_CONFIDENCE:
            continue
        buckets.append(
            BucketOutcome(
                market_id=m.market_id,
                label=pr.range.normalized_label,
                range=pr.range,
                yes_price=m.yes_price,
                liquidity=m.liquidity,
                volume=m.volume,
                confidence=confidence,
            )
        )
    buckets.sort(key=lambda b: b.range.low)
    # Lows must be strictly ascending; a repeated bucket keeps its first listing.
    unique: list[BucketOutcome] = []
    for b in buckets:
        if unique and unique[-1].range.low == b.range.low:
            continue
        unique.append(b)
    return tuple(unique)


def _market_family(m: NormalizedMarket) -> MarketFamily:
    if len(m.outcomes) >= 3:
        multi = tuple(MultiOutcome(name=name, price=m.prices.get(name)) for name in m.outcomes)
        return MarketFamily(
            family_id=f"market:{m.market_id}",
            family_type="multi",
            title=m.title,
            event_id=m.event_id,
            num_outcomes=len(multi),
            multi=multi,
        )
    return MarketFamily(
        family_id=f"market:{m.market_id}",
        family_type="single",
        title=m.title,
        event_id=m.event_id,
        num_outcomes=len(m.outcomes),
        single=SingleOutcome(
            market_id=m.market_id,
            yes_price=m.yes_price,
            liquidity=m.liquidity,
            volume=m.volume,
        ),
    )
