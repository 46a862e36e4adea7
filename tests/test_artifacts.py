"""Dashboard, heartbeat and JSON file helpers."""

from datetime import datetime, timezone

from famscan.models import NormalizedMarket
from famscan.storage.artifacts import (
    NO_QUALITY_BUCKETS_WARNING,
    build_dashboard,
    heartbeat,
    prices_snapshot,
    read_json_file,
    top_families,
    write_json_file,
)

TS = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


def test_json_files(tmp_path):
    path = tmp_path / "a" / "b.json"
    write_json_file(path, {"x": [1, 2]})
    assert read_json_file(path) == {"x": [1, 2]}
    assert read_json_file(tmp_path / "missing.json") is None
    (tmp_path / "bad.json").write_text("{nope")
    assert read_json_file(tmp_path / "bad.json") is None


def test_top_families_backfills_with_singles(make_scored):
    ranked = [
        make_scored("market:s0", "single"),
        make_scored("b0", score=0.5),
        make_scored("market:m0", "multi", score=0.2),
        make_scored("market:s1", "single"),
    ]
    picked = top_families(ranked, 3)
    assert [f.family_id for f in picked] == ["b0", "market:m0", "market:s0"]
    assert [f.family_id for f in top_families(ranked, 1)] == ["b0"]


def test_dashboard_warns_without_quality_buckets(make_scored):
    scored = [make_scored("b0", num_outcomes=3), make_scored("market:s0", "single")]
    d = build_dashboard(ts=TS, scan={"fetched": 4}, scored=scored, ranked=scored[1:], top_n=10)
    assert d["warnings"] == [NO_QUALITY_BUCKETS_WARNING]
    assert d["scan"]["fetched"] == 4
    assert d["scan"]["bucket_families"] == 1
    assert d["scan"]["bucket_families_with_6_valid_prices"] == 0
    assert d["scan"]["family_type_counts"] == {"bucket": 1, "multi": 0, "single": 1}
    assert d["top_families"][0]["family_id"] == "market:s0"
    assert "features" not in d["top_families"][0]
    assert "paper" not in d


def test_dashboard_bucket_entry_has_features(make_scored):
    fam = make_scored("b0", score=0.4, overround=0.9, liquidity_max=1000.0)
    d = build_dashboard(ts=TS, scan={}, scored=[fam], ranked=[fam], paper={"open_positions_count": 0})
    entry = d["top_families"][0]
    assert entry["features"]["overround"] == 0.9
    assert entry["features"]["valid_prices"] == 6
    assert d["warnings"] == []
    assert d["paper"] == {"open_positions_count": 0}


def test_prices_snapshot_and_heartbeat():
    markets = [
        NormalizedMarket(market_id="a", title="A", outcomes=("Yes", "No"), prices={"Yes": 0.2, "No": None}),
        NormalizedMarket(market_id="b", title="B"),
    ]
    snap = prices_snapshot(markets, TS)
    assert snap["prices"] == [{"market_id": "a", "outcomes": ["Yes", "No"], "outcome_prices": [0.2, None]}]
    hb = heartbeat(
        ts=TS, fetched=3, parsed=3, normalized=2, families=2, bucket_families=0, top_score=None
    )
    assert hb["timestamp"] == TS.isoformat()
    assert hb["top_score"] is None
