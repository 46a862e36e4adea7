"""Structural features and opportunity score per family.

Bucket yes-prices are read as implied probabilities for each bucket. Prices outside
(0.001, 0.999), None and non-finite values are invalid and excluded from all feature math.
The score is a read-only structural heuristic, not a forecast.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import structlog

from famscan.models.family import BestCluster, BucketOutcome, FeatureSet, MarketFamily, ScoredFamily

log = structlog.get_logger(__name__)

CLUSTER_SIZES = (2, 3, 4)
CLUSTER_WINDOW_PAD = 2
_EPS = 1e-9


@dataclass(frozen=True)
class ScoreWeights:
    """Weights, penalties and reporting thresholds for the bucket opportunity score."""

    spike: float = 0.30
    underround: float = 0.30
    cluster: float = 0.30
    liquidity: float = 0.10
    missing_penalty: float = 0.10
    gap_penalty: float = 0.15
    overlap_penalty: float = 0.25
    partition_min_buckets: int = 6
    multi_min_valid: int = 3
    underround_report_below: float = 0.95
    overround_report_above: float = 1.05
    spike_report_at: float = 0.08


def is_valid_prob(p: float | None) -> bool:
    return p is not None and math.isfinite(p) and 0.001 < p < 0.999


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def score_families(
    families: Iterable[MarketFamily], weights: ScoreWeights | None = None
) -> tuple[ScoredFamily, ...]:
    """Score every family; output order matches input order."""
    w = weights or ScoreWeights()
    scored = []
    for f in families:
        if f.family_type == "bucket" and f.buckets:
            scored.append(score_bucket_family(f, w))
        elif f.family_type == "multi" and f.multi:
            scored.append(score_multi_family(f, w))
        else:
            scored.append(_scored(f, 0.0, ("single/binary (deprioritized)",)))
    log.debug("families_scored", families=len(scored))
    return tuple(scored)


def score_bucket_family(f: MarketFamily, w: ScoreWeights) -> ScoredFamily:
    buckets = f.buckets or ()
    features = bucket_features(buckets)

    reasons: list[str] = []
    if features.overround is None:
        reasons.append("insufficient prices for overround")
    elif features.overround < w.underround_report_below:
        reasons.append(f"underround {features.overround:.3f}")
    elif features.overround > w.overround_report_above:
        reasons.append(f"overround {features.overround:.3f}")
    if features.max_spike is not None and features.max_spike >= w.spike_report_at:
        reasons.append(f"spike {features.max_spike:.3f}")
    if features.best_cluster is not None:
        bc = features.best_cluster
        reasons.append(f"bestCluster {'+'.join(bc.labels)} cost {bc.cost:.3f} z {bc.z:.2f}")
    if features.gap_count > 0:
        reasons.append(f"gaps {features.gap_count}")
    if features.overlap_count > 0:
        reasons.append(f"overlaps {features.overlap_count}")
    if features.missing_prices > 0:
        reasons.append(f"missingPrices {features.missing_prices}")

    # Under/overround only means something when the buckets tile a contiguous partition.
    partitioned = (
        features.gap_count == 0
        and features.overlap_count == 0
        and len(buckets) >= w.partition_min_buckets
    )
    underround_edge = (
        max(0.0, 1.0 - features.overround) if partitioned and features.overround is not None else 0.0
    )
    spike_score = features.max_spike or 0.0
    cluster_score = clamp01(-features.best_cluster_z / 2) if features.best_cluster_z is not None else 0.0
    liquidity_score = (
        clamp01(math.log10(1 + features.liquidity_max) / 5)
        if features.liquidity_max is not None and features.liquidity_max >= 0
        else 0.0
    )
    penalty = (
        (w.missing_penalty if features.missing_prices > 0 else 0.0)
        + (w.gap_penalty if features.gap_count > 0 else 0.0)
        + (w.overlap_penalty if features.overlap_count > 0 else 0.0)
    )

    terms = (
        ("spikeScore", spike_score),
        ("underroundEdge", underround_edge),
        ("clusterCheapness", cluster_score),
        ("liquidityScore", liquidity_score),
    )
    for name, value in terms:
        if value > 0:
            reasons.append(f"{name} {value:.3f}")
    if penalty > 0:
        reasons.append(f"penalty {penalty:.2f}")

    raw = (
        w.spike * spike_score
        + w.underround * underround_edge
        + w.cluster * cluster_score
        + w.liquidity * liquidity_score
    )
    return _scored(f, clamp01(raw - penalty), tuple(reasons), features)


def score_multi_family(f: MarketFamily, w: ScoreWeights) -> ScoredFamily:
    prices = [o.price for o in f.multi or ()]
    valid = [p for p in prices if is_valid_prob(p)]
    missing = len(prices) - len(valid)
    total = math.fsum(valid) if len(valid) >= w.multi_min_valid else None

    reasons = []
    if total is None:
        reasons.append("insufficient prices for multi overround")
    else:
        reasons.append(f"multi overround={total:.3f}")
    if missing > 0:
        reasons.append(f"missingPrices {missing}")
    score = clamp01(abs(1 - total)) if total is not None else 0.0
    return _scored(f, score, tuple(reasons))


def bucket_features(buckets: Sequence[BucketOutcome]) -> FeatureSet:
    prices = [b.yes_price for b in buckets]
    valid = [p for p in prices if is_valid_prob(p)]
    gaps, overlaps = adjacency_stats(buckets)
    best = best_cluster(buckets)
    return FeatureSet(
        valid_prices=len(valid),
        missing_prices=len(prices) - len(valid),
        gap_count=gaps,
        overlap_count=overlaps,
        liquidity_max=_max_or_none(b.liquidity for b in buckets),
        volume_max=_max_or_none(b.volume for b in buckets),
        overround=math.fsum(valid) if len(valid) >= 2 else None,
        max_spike=max_spike(buckets),
        best_cluster=best,
        best_cluster_ratio=best.ratio if best else None,
        best_cluster_z=best.z if best else None,
    )


def adjacency_stats(buckets: Sequence[BucketOutcome]) -> tuple[int, int]:
    """(gaps, overlaps) between consecutive sorted buckets."""
    gaps = overlaps = 0
    for prev, cur in zip(buckets, buckets[1:]):
        if cur.range.low > prev.range.high:
            gaps += 1
        if cur.range.low < prev.range.high:
            overlaps += 1
    return gaps, overlaps


def max_spike(buckets: Sequence[BucketOutcome]) -> float | None:
    """Largest |p_i - mean(p_i-1, p_i+1)| over interior buckets whose triple is all valid."""
    best: float | None = None
    for i in range(1, len(buckets) - 1):
        p_prev, p, p_next = buckets[i - 1].yes_price, buckets[i].yes_price, buckets[i + 1].yes_price
        if not (is_valid_prob(p_prev) and is_valid_prob(p) and is_valid_prob(p_next)):
            continue
        spike = abs(p - 0.5 * (p_prev + p_next))
        if best is None or spike > best:
            best = spike
    return best


def best_cluster(buckets: Sequence[BucketOutcome]) -> BestCluster | None:
    """Cluster whose cost is lowest relative to its +/-2 bucket window, by z-score.

    Enumerates every contiguous run of 2-4 buckets; fine for families of tens of buckets.
    """
    candidates: list[tuple[tuple[str, ...], float, float]] = []
    n = len(buckets)
    for k in CLUSTER_SIZES:
        for i in range(n - k + 1):
            cluster = buckets[i : i + k]
            if not all(is_valid_prob(b.yes_price) for b in cluster):
                continue
            window = buckets[max(0, i - CLUSTER_WINDOW_PAD) : min(n, i + k + CLUSTER_WINDOW_PAD)]
            if not all(is_valid_prob(b.yes_price) for b in window):
                continue
            cost = math.fsum(b.yes_price for b in cluster)
            window_sum = math.fsum(b.yes_price for b in window)
            candidates.append((tuple(b.label for b in cluster), cost, cost / max(window_sum, _EPS)))

    if not candidates:
        return None
    ratios = [c[2] for c in candidates]
    mean = math.fsum(ratios) / len(ratios)
    std = math.sqrt(math.fsum((r - mean) ** 2 for r in ratios) / len(ratios))

    best: BestCluster | None = None
    for labels, cost, ratio in candidates:
        z = (ratio - mean) / std if std > _EPS else 0.0
        if best is None or z < best.z:
            best = BestCluster(labels=labels, cost=cost, ratio=ratio, z=z)
    return best


def _max_or_none(values: Iterable[float | None]) -> float | None:
    present = [v for v in values if v is not None and math.isfinite(v)]
    return max(present) if present else None


def _scored(
    f: MarketFamily,
    score: float,
    reasons: tuple[str, ...],
    features: FeatureSet | None = None,
) -> ScoredFamily:
    return ScoredFamily(**dict(f), features=features, opportunity_score=score, reasons=reasons)
