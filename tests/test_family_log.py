"""Evaluation log rows in DuckDB and Parquet export."""

from datetime import datetime, timedelta, timezone

from famscan.pipeline import run_core
from famscan.storage.export import export_family_scores_to_parquet
from famscan.storage.family_log import append_family_rows, family_rows, log_stats, read_rows_since

T0 = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


def test_rows_round_trip(temp_db, bucket_payloads):
    scored = run_core(bucket_payloads()).scored
    rows = family_rows(scored, T0)
    assert append_family_rows(temp_db, rows) == 1
    (back,) = read_rows_since(temp_db, T0 - timedelta(hours=1))
    assert back == rows[0]
    assert back.ts == T0
    assert back.family_type == "bucket"
    assert back.valid_prices == 8
    assert back.overround is not None


def test_rows_without_features_use_nulls(temp_db, make_scored):
    rows = family_rows([make_scored("market:s", "single")], T0)
    append_family_rows(temp_db, rows)
    (back,) = read_rows_since(temp_db, T0)
    assert back.overround is None
    assert back.valid_prices is None


def test_read_since_filters_and_orders(temp_db, make_scored):
    fam = make_scored("market:s", "single")
    for hours in (2, 0, 1):
        append_family_rows(temp_db, family_rows([fam], T0 + timedelta(hours=hours)))
    rows = read_rows_since(temp_db, T0 + timedelta(hours=1))
    assert [r.ts for r in rows] == [T0 + timedelta(hours=1), T0 + timedelta(hours=2)]


def test_empty_append_is_noop(temp_db):
    assert append_family_rows(temp_db, []) == 0


def test_log_stats(temp_db, make_scored):
    fams = [make_scored("a"), make_scored("market:s", "single")]
    append_family_rows(temp_db, family_rows(fams, T0))
    append_family_rows(temp_db, family_rows(fams, T0 + timedelta(hours=1)))
    s = log_stats(temp_db)
    assert s["total_rows"] == 4
    assert s["scans"] == 2
    assert s["min_ts"] == T0
    assert s["max_ts"] == T0 + timedelta(hours=1)
    assert s["by_type"] == [{"family_type": "bucket", "count": 2}, {"family_type": "single", "count": 2}]


def test_export_parquet(temp_db, make_scored, tmp_path):
    append_family_rows(temp_db, family_rows([make_scored("a"), make_scored("market:s", "single")], T0))
    out = tmp_path / "out" / "scores.parquet"
    assert export_family_scores_to_parquet(temp_db, out) == 2
    assert out.exists()
    assert export_family_scores_to_parquet(temp_db, tmp_path / "b.parquet", family_type="bucket") == 1
