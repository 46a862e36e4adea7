"""Quality gate and ranking of scored families."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from famscan.models.family import ScoredFamily


@dataclass(frozen=True)
class QualityGate:
    """Thresholds a bucket family must meet to be ranked. Multi/single always pass."""

    min_valid_prices: int = 6
    max_missing_prices: int = 2
    max_gaps: int = 2
    max_overlaps: int = 0
    # Only enforced when liquidity is reported at all.
    min_liquidity: float = 500.0

    def passes(self, f: ScoredFamily) -> bool:
        if f.family_type != "bucket":
            return True
        feats = f.features
        if feats is None:
            return False
        if feats.valid_prices < self.min_valid_prices:
            return False
        if feats.missing_prices > self.max_missing_prices:
            return False
        if feats.gap_count > self.max_gaps or feats.overlap_count > self.max_overlaps:
            return False
        if feats.liquidity_max is not None and feats.liquidity_max < self.min_liquidity:
            return False
        return True


def rank_families(
    families: Iterable[ScoredFamily], gate: QualityGate | None = None
) -> tuple[ScoredFamily, ...]:
    """Drop junk bucket families, then sort by score desc, num_outcomes desc."""
    gate = gate or QualityGate()
    kept = [f for f in families if gate.passes(f)]
    kept.sort(key=lambda f: (f.opportunity_score, f.num_outcomes), reverse=True)
    return tuple(kept)
