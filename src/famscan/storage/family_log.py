"""Family evaluation log: one row per family per scan, append-only."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import astuple, dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from famscan.models.family import ScoredFamily
from famscan.storage.db import from_db_ts, to_db_ts

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_COLUMNS = (
    "ts",
    "family_id",
    "family_type",
    "title",
    "opportunity_score",
    "overround",
    "max_spike",
    "best_cluster_z",
    "liquidity_max",
    "volume_max",
    "valid_prices",
    "missing_prices",
)


@dataclass(frozen=True)
class FamilyRow:
    ts: datetime
    family_id: str
    family_type: str
    title: str
    opportunity_score: float
    overround: float | None = None
    max_spike: float | None = None
    best_cluster_z: float | None = None
    liquidity_max: float | None = None
    volume_max: float | None = None
    valid_prices: int | None = None
    missing_prices: int | None = None

    @classmethod
    def from_scored(cls, f: ScoredFamily, ts: datetime) -> FamilyRow:
        feats = f.features
        return cls(
            ts=ts,
            family_id=f.family_id,
            family_type=f.family_type,
            title=f.title,
            opportunity_score=f.opportunity_score,
            overround=feats.overround if feats else None,
            max_spike=feats.max_spike if feats else None,
            best_cluster_z=feats.best_cluster_z if feats else None,
            liquidity_max=feats.liquidity_max if feats else None,
            volume_max=feats.volume_max if feats else None,
            valid_prices=feats.valid_prices if feats else None,
            missing_prices=feats.missing_prices if feats else None,
        )


def family_rows(scored: Iterable[ScoredFamily], ts: datetime) -> list[FamilyRow]:
    return [FamilyRow.from_scored(f, ts) for f in scored]


def append_family_rows(conn: DuckDBPyConnection, rows: list[FamilyRow]) -> int:
    """Insert rows in one batch. Returns number of rows written."""
    if not rows:
        return 0
    placeholders = ", ".join("?" for _ in _COLUMNS)
    conn.executemany(
        f"INSERT INTO family_scores ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
        [[to_db_ts(r.ts), *astuple(r)[1:]] for r in rows],
    )
    return len(rows)


def read_rows_since(conn: DuckDBPyConnection, since: datetime) -> list[FamilyRow]:
    """Rows with ts >= since, oldest first."""
    result = conn.execute(
        f"SELECT {', '.join(_COLUMNS)} FROM family_scores WHERE ts >= ? ORDER BY ts, family_id",
        [to_db_ts(since)],
    ).fetchall()
    return [FamilyRow(from_db_ts(r[0]), *r[1:]) for r in result]


def log_stats(conn: DuckDBPyConnection) -> dict[str, Any]:
    """Row count, scan count, time range and rows per family type."""
    total, scans, min_ts, max_ts = conn.execute(
        "SELECT COUNT(*), COUNT(DISTINCT ts), MIN(ts), MAX(ts) FROM family_scores"
    ).fetchone()
    by_type = conn.execute(
        "SELECT family_type, COUNT(*) FROM family_scores GROUP BY family_type ORDER BY family_type"
    ).fetchall()
    return {
        "total_rows": total,
        "scans": scans,
        "min_ts": from_db_ts(min_ts),
        "max_ts": from_db_ts(max_ts),
        "by_type": [{"family_type": t, "count": c} for t, c in by_type],
    }
