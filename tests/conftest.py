"""Shared fixtures: temp DuckDB, market payloads and family builders."""

import tempfile
from pathlib import Path

import pytest
import structlog

from famscan.models import (
    BucketOutcome,
    FeatureSet,
    MultiOutcome,
    ParsedRange,
    ScoredFamily,
    SingleOutcome,
)
from famscan.storage.db import get_connection, init_schema


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_db():
    tmp = tempfile.mkdtemp()
    path = Path(tmp) / "test.duckdb"
    conn = get_connection(path)
    init_schema(conn)
    yield conn
    conn.close()
    path.unlink(missing_ok=True)
    Path(tmp).rmdir()


@pytest.fixture
def bucket_payloads():
    """Eight "X a-b%" markets at 0.12 each, one event."""

    def make(price=0.12, liquidity=1000, event_id="e1", prefix="X"):
        return [
            {
                "id": f"m{i}",
                "question": f"{prefix} {i}-{i + 1}%",
                "event_id": event_id,
                "outcomes": '["Yes", "No"]',
                "outcomePrices": f'["{price}", "{round(1 - price, 4)}"]',
                "liquidityNum": liquidity,
                "volumeNum": 5000,
            }
            for i in range(8)
        ]

    return make


@pytest.fixture
def make_buckets():
    """Contiguous unit-less buckets [i, i+1) with the given yes prices."""

    def make(prices, liquidity=None):
        return tuple(
            BucketOutcome(
                market_id=f"b{i}",
                label=f"{i}-{i + 1}",
                range=ParsedRange(low=i, high=i + 1, normalized_label=f"{i}-{i + 1}"),
                yes_price=p,
                liquidity=liquidity,
                confidence=2,
            )
            for i, p in enumerate(prices)
        )

    return make


@pytest.fixture
def make_scored(make_buckets):
    """ScoredFamily with a chosen type, score and feature overrides."""

    def make(family_id, family_type="bucket", score=0.0, num_outcomes=None, **features):
        if family_type == "bucket":
            n = num_outcomes or 6
            feats = FeatureSet(
                **{
                    "valid_prices": n,
                    "missing_prices": 0,
                    "gap_count": 0,
                    "overlap_count": 0,
                    **features,
                }
            )
            return ScoredFamily(
                family_id=family_id,
                family_type="bucket",
                title=family_id,
                num_outcomes=n,
                buckets=make_buckets([0.1] * n),
                features=feats,
                opportunity_score=score,
            )
        if family_type == "single":
            return ScoredFamily(
                family_id=family_id,
                family_type="single",
                title=family_id,
                num_outcomes=num_outcomes or 2,
                single=SingleOutcome(market_id=family_id.split(":")[-1], yes_price=0.4),
                opportunity_score=score,
            )
        n = num_outcomes or 3
        return ScoredFamily(
            family_id=family_id,
            family_type="multi",
            title=family_id,
            num_outcomes=n,
            multi=tuple(MultiOutcome(name=f"o{i}", price=0.3) for i in range(n)),
            opportunity_score=score,
        )

    return make
