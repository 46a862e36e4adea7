"""Feature extraction and opportunity scoring."""

import math

import pytest

from famscan.detect import ScoreWeights, is_valid_prob, score_families
from famscan.detect.anomalies import adjacency_stats, best_cluster, bucket_features, max_spike
from famscan.models import BucketOutcome, MarketFamily, MultiOutcome, ParsedRange, SingleOutcome
from famscan.normalize import build_families, normalize_markets


def _bucket_family(buckets):
    return MarketFamily(
        family_id="bucket:test",
        family_type="bucket",
        title="test",
        num_outcomes=len(buckets),
        buckets=buckets,
    )


def _bucket(i, low, high, price):
    return BucketOutcome(
        market_id=f"b{i}",
        label=f"{low}-{high}",
        range=ParsedRange(low=low, high=high, normalized_label=f"{low}-{high}"),
        yes_price=price,
    )


def test_eight_flat_buckets_show_underround(bucket_payloads):
    markets, _ = normalize_markets(bucket_payloads(liquidity=None))
    (scored,) = score_families(build_families(markets))
    feats = scored.features
    assert feats.valid_prices == 8
    assert feats.missing_prices == 0
    assert feats.gap_count == 0
    assert feats.overlap_count == 0
    assert feats.overround == pytest.approx(0.96)
    assert feats.max_spike == pytest.approx(0.0)
    # 0.96 is below 1 but above the reporting cutoff, so only the edge term shows up.
    assert not any(r.startswith("underround ") for r in scored.reasons)
    assert any(r.startswith("underroundEdge 0.040") for r in scored.reasons)
    assert scored.opportunity_score >= 0.3 * 0.04 - 1e-9
    assert 0 < scored.opportunity_score <= 1


def test_validity_predicate():
    assert is_valid_prob(0.5)
    assert not is_valid_prob(0.001)
    assert not is_valid_prob(0.999)
    assert not is_valid_prob(None)
    assert not is_valid_prob(math.nan)
    assert not is_valid_prob(math.inf)


def test_invalid_prices_are_excluded(make_buckets):
    feats = bucket_features(make_buckets([0.2, None, 1.0, 0.3, math.nan]))
    assert feats.valid_prices == 2
    assert feats.missing_prices == 3
    assert feats.overround == pytest.approx(0.5)
    assert feats.max_spike is None


def test_overround_needs_two_valid_prices(make_buckets):
    assert bucket_features(make_buckets([0.2, None])).overround is None


def test_adjacency_counts_gaps_and_overlaps():
    buckets = (_bucket(0, 0, 1, 0.2), _bucket(1, 2, 3, 0.2), _bucket(2, 2.5, 4, 0.2))
    assert adjacency_stats(buckets) == (1, 1)


def test_spike_and_cheap_cluster(make_buckets):
    buckets = make_buckets([0.2, 0.2, 0.2, 0.02, 0.02, 0.2, 0.2, 0.2])
    assert max_spike(buckets) == pytest.approx(0.09)
    best = best_cluster(buckets)
    assert best.labels == ("3-4", "4-5")
    assert best.cost == pytest.approx(0.04)
    assert best.z < 0


def test_best_cluster_requires_valid_window(make_buckets):
    assert best_cluster(make_buckets([0.2, None, 0.2])) is None


def test_gap_and_overlap_penalties_remove_underround_edge():
    buckets = (_bucket(0, 0, 1, 0.1), _bucket(1, 2, 3, 0.1), _bucket(2, 2.5, 4, 0.1))
    (scored,) = score_families([_bucket_family(buckets)])
    assert "gaps 1" in scored.reasons
    assert "overlaps 1" in scored.reasons
    assert not any(r.startswith("underroundEdge") for r in scored.reasons)
    assert scored.opportunity_score == 0.0


def test_scores_stay_in_unit_interval(make_buckets):
    prices = [0.9, 0.01, 0.9, 0.01, 0.9, 0.01, 0.9]
    (scored,) = score_families([_bucket_family(make_buckets(prices, liquidity=1e9))])
    assert 0 <= scored.opportunity_score <= 1


def test_multi_family_scores_distance_from_one():
    fam = MarketFamily(
        family_id="market:m",
        family_type="multi",
        title="Who wins?",
        num_outcomes=3,
        multi=(MultiOutcome(name="A", price=0.5), MultiOutcome(name="B", price=0.3), MultiOutcome(name="C", price=0.3)),
    )
    (scored,) = score_families([fam])
    assert scored.opportunity_score == pytest.approx(0.1)
    assert "multi overround=1.100" in scored.reasons
    assert scored.features is None


def test_multi_family_with_too_few_prices():
    fam = MarketFamily(
        family_id="market:m",
        family_type="multi",
        title="Who wins?",
        num_outcomes=3,
        multi=(MultiOutcome(name="A", price=0.5), MultiOutcome(name="B", price=0.3), MultiOutcome(name="C")),
    )
    (scored,) = score_families([fam])
    assert scored.opportunity_score == 0
    assert scored.reasons == ("insufficient prices for multi overround", "missingPrices 1")


def test_single_family_is_deprioritized():
    fam = MarketFamily(
        family_id="market:s",
        family_type="single",
        title="Will it rain?",
        num_outcomes=2,
        single=SingleOutcome(market_id="s", yes_price=0.4),
    )
    (scored,) = score_families([fam])
    assert scored.opportunity_score == 0
    assert scored.reasons == ("single/binary (deprioritized)",)


def test_custom_weights(make_buckets):
    fam = _bucket_family(make_buckets([0.1] * 8))
    (default,) = score_families([fam])
    (heavy,) = score_families([fam], ScoreWeights(underround=1.0, cluster=0.0))
    assert heavy.opportunity_score == pytest.approx(0.2)
    assert default.opportunity_score != heavy.opportunity_score
