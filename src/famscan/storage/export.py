"""Export the family evaluation log to Parquet."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

FAMILY_TYPES = ("bucket", "multi", "single")


def export_family_scores_to_parquet(
    conn: DuckDBPyConnection,
    output_path: str | Path,
    family_type: str | None = None,
) -> int:
    """Export family_scores to a Parquet file. Optional filter by family_type. Returns row count."""
    if family_type and family_type not in FAMILY_TYPES:
        raise ValueError(f"unknown family type: {family_type!r}")
    path = Path(output_path).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    path_str = str(path).replace("'", "''")
    where = f"WHERE family_type = '{family_type}'" if family_type else ""
    conn.execute(f"COPY (SELECT * FROM family_scores {where} ORDER BY ts) TO '{path_str}' (FORMAT PARQUET)")
    return conn.execute(f"SELECT COUNT(*) FROM family_scores {where}").fetchone()[0]
