"""DuckDB connection and schema init."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
-- Evaluation log: one row per family per scan (append-only)
CREATE TABLE IF NOT EXISTS family_scores (
    ts                  TIMESTAMP NOT NULL,
    family_id           VARCHAR NOT NULL,
    family_type         VARCHAR NOT NULL,
    title               VARCHAR,
    opportunity_score   DOUBLE NOT NULL,
    overround           DOUBLE,
    max_spike           DOUBLE,
    best_cluster_z      DOUBLE,
    liquidity_max       DOUBLE,
    volume_max          DOUBLE,
    valid_prices        INTEGER,
    missing_prices      INTEGER
);

-- Paper trading bankroll (single row, id = 1)
CREATE TABLE IF NOT EXISTS paper_state (
    id                  INTEGER PRIMARY KEY,
    updated_at          TIMESTAMP,
    bankroll_cash_usd   DOUBLE NOT NULL,
    last_entry_json     JSON
);

-- Open paper positions (replaced wholesale on every save)
CREATE TABLE IF NOT EXISTS paper_positions (
    id                  VARCHAR PRIMARY KEY,
    family_id           VARCHAR NOT NULL,
    family_type         VARCHAR NOT NULL,
    market_id           VARCHAR NOT NULL,
    outcome             VARCHAR NOT NULL,
    entry_ts            TIMESTAMP NOT NULL,
    entry_price         DOUBLE NOT NULL,
    shares              DOUBLE NOT NULL,
    entry_usd           DOUBLE NOT NULL,
    last_mark_ts        TIMESTAMP,
    last_mark_price     DOUBLE
);

-- Paper trade events (append-only)
CREATE TABLE IF NOT EXISTS paper_events (
    ts                  TIMESTAMP NOT NULL,
    event_type          VARCHAR NOT NULL,
    position_id         VARCHAR NOT NULL,
    market_id           VARCHAR NOT NULL,
    payload             JSON NOT NULL
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager."""
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise


def to_db_ts(ts: datetime | None) -> datetime | None:
    """Aware datetime -> naive UTC for TIMESTAMP columns."""
    if ts is None:
        return None
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def from_db_ts(ts: datetime | None) -> datetime | None:
    """Naive UTC from a TIMESTAMP column -> aware datetime."""
    if ts is None:
        return None
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts
