"""Paper portfolio persistence in DuckDB: state row, open positions, event log."""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from famscan.paper.portfolio import PaperConfig, PaperEvent, PaperPosition, PaperState
from famscan.storage.db import from_db_ts, to_db_ts

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_STATE_ID = 1
_POSITION_COLUMNS = (
    "id",
    "family_id",
    "family_type",
    "market_id",
    "outcome",
    "entry_ts",
    "entry_price",
    "shares",
    "entry_usd",
    "last_mark_ts",
    "last_mark_price",
)


def load_paper_state(conn: DuckDBPyConnection, config: PaperConfig) -> PaperState:
    """Stored state, or a fresh bankroll when nothing was saved yet."""
    row = conn.execute(
        "SELECT updated_at, bankroll_cash_usd, last_entry_json FROM paper_state WHERE id = ?",
        [_STATE_ID],
    ).fetchone()
    if row is None:
        return PaperState.fresh(config)
    updated_at, cash, last_entry_json = row
    positions = [
        PaperPosition(
            id=r[0],
            family_id=r[1],
            family_type=r[2],
            market_id=r[3],
            outcome=r[4],
            entry_ts=from_db_ts(r[5]),
            entry_price=r[6],
            shares=r[7],
            entry_usd=r[8],
            last_mark_ts=from_db_ts(r[9]),
            last_mark_price=r[10],
        )
        for r in conn.execute(
            f"SELECT {', '.join(_POSITION_COLUMNS)} FROM paper_positions ORDER BY entry_ts, id"
        ).fetchall()
    ]
    return PaperState(
        bankroll_cash_usd=cash,
        updated_at=from_db_ts(updated_at),
        positions=positions,
        last_entry_by_family=_decode_last_entry(last_entry_json),
    )


def save_paper_state(conn: DuckDBPyConnection, state: PaperState) -> None:
    """Replace the stored state row and the open position set in one transaction."""
    last_entry = {k: v.isoformat() for k, v in state.last_entry_by_family.items()}
    conn.execute("BEGIN TRANSACTION")
    try:
        conn.execute("DELETE FROM paper_state WHERE id = ?", [_STATE_ID])
        conn.execute(
            "INSERT INTO paper_state (id, updated_at, bankroll_cash_usd, last_entry_json) VALUES (?, ?, ?, ?)",
            [_STATE_ID, to_db_ts(state.updated_at), state.bankroll_cash_usd, json.dumps(last_entry)],
        )
        conn.execute("DELETE FROM paper_positions")
        if state.positions:
            placeholders = ", ".join("?" for _ in _POSITION_COLUMNS)
            conn.executemany(
                f"INSERT INTO paper_positions ({', '.join(_POSITION_COLUMNS)}) VALUES ({placeholders})",
                [
                    [
                        p.id,
                        p.family_id,
                        p.family_type,
                        p.market_id,
                        p.outcome,
                        to_db_ts(p.entry_ts),
                        p.entry_price,
                        p.shares,
                        p.entry_usd,
                        to_db_ts(p.last_mark_ts),
                        p.last_mark_price,
                    ]
                    for p in state.positions
                ],
            )
        conn.execute("COMMIT")
    except Exception:
        conn.execute("ROLLBACK")
        raise


def append_paper_events(conn: DuckDBPyConnection, events: Iterable[PaperEvent]) -> int:
    rows = [
        [to_db_ts(e.ts), e.type, e.position_id, e.market_id, json.dumps(e.to_dict())]
        for e in events
    ]
    if rows:
        conn.executemany(
            "INSERT INTO paper_events (ts, event_type, position_id, market_id, payload) VALUES (?, ?, ?, ?, ?)",
            rows,
        )
    return len(rows)


def count_paper_events(conn: DuckDBPyConnection) -> dict[str, int]:
    """Number of stored events per event type."""
    rows = conn.execute(
        "SELECT event_type, COUNT(*) FROM paper_events GROUP BY event_type ORDER BY event_type"
    ).fetchall()
    return {t: c for t, c in rows}


def _decode_last_entry(raw: Any) -> dict[str, datetime]:
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError:
        return {}
    out: dict[str, datetime] = {}
    for family_id, value in (data or {}).items():
        try:
            out[family_id] = datetime.fromisoformat(value)
        except (TypeError, ValueError):
            continue
    return out
