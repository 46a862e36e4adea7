"""Pure scan core: raw records -> normalized markets -> families -> scored -> ranked."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from famscan.detect.anomalies import ScoreWeights, score_families
from famscan.models import MarketFamily, NormalizedMarket, NormalizeStats, RawMarketRecord, ScoredFamily
from famscan.normalize.families import build_families
from famscan.normalize.markets import normalize_markets
from famscan.score.rank import QualityGate, rank_families


@dataclass(frozen=True)
class CoreResult:
    """Every intermediate product of one scan batch."""

    markets: tuple[NormalizedMarket, ...]
    stats: NormalizeStats
    families: tuple[MarketFamily, ...]
    scored: tuple[ScoredFamily, ...]
    ranked: tuple[ScoredFamily, ...]

    @property
    def bucket_families(self) -> tuple[ScoredFamily, ...]:
        return tuple(f for f in self.scored if f.family_type == "bucket")

    def type_counts(self) -> dict[str, int]:
        counts = {"bucket": 0, "multi": 0, "single": 0}
        for f in self.scored:
            counts[f.family_type] += 1
        return counts


def run_core(
    records: Iterable[RawMarketRecord | Mapping[str, Any]],
    gate: QualityGate | None = None,
    weights: ScoreWeights | None = None,
) -> CoreResult:
    """Run the whole core over one batch. No I/O; same input gives the same output."""
    markets, stats = normalize_markets(records)
    families = build_families(markets)
    scored = score_families(families, weights)
    ranked = rank_families(scored, gate)
    return CoreResult(
        markets=tuple(markets),
        stats=stats,
        families=families,
        scored=scored,
        ranked=ranked,
    )
