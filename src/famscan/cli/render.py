"""Plain-text table and number formatting for CLI output."""

from __future__ import annotations

import math
from collections.abc import Sequence


def fmt_num(n: float | None, digits: int = 3) -> str:
    if n is None or not math.isfinite(n):
        return "n/a"
    return f"{n:.{digits}f}"


def fmt_usd(n: float | None) -> str:
    if n is None or not math.isfinite(n):
        return "n/a"
    return f"${n:.2f}"


def truncate(s: str, max_len: int = 60) -> str:
    if len(s) <= max_len:
        return s
    return s[: max(0, max_len - 1)] + "…"


def render_table(rows: Sequence[Sequence[str]]) -> str:
    """Left-aligned columns separated by two spaces; first row is the header."""
    if not rows:
        return ""
    widths = [0] * max(len(r) for r in rows)
    for r in rows:
        for i, cell in enumerate(r):
            widths[i] = max(widths[i], len(cell))
    return "\n".join("  ".join(cell.ljust(widths[i]) for i, cell in enumerate(r)).rstrip() for r in rows)


def top_families_table(entries: Sequence[dict]) -> str:
    """Dashboard top-family entries as a ranked table."""
    rows = [["rank", "type", "score", "over", "spike", "z", "liq", "title"]]
    for i, f in enumerate(entries, start=1):
        feats = f.get("features") or {}
        rows.append(
            [
                str(i),
                str(f.get("family_type", "")),
                fmt_num(_as_float(f.get("opportunity_score")), 3),
                fmt_num(_as_float(feats.get("overround")), 3),
                fmt_num(_as_float(feats.get("max_spike")), 3),
                fmt_num(_as_float(feats.get("best_cluster_z")), 2),
                fmt_num(_as_float(feats.get("liquidity_max")), 0),
                truncate(str(f.get("title", "")), 60),
            ]
        )
    return render_table(rows)


def paper_line(paper: dict) -> str:
    return (
        f"positions={paper.get('open_positions_count')} exposure={fmt_usd(_as_float(paper.get('exposure_usd')))} "
        f"cash={fmt_usd(_as_float(paper.get('bankroll_cash_usd')))} "
        f"realized={fmt_usd(_as_float(paper.get('realized_pnl_usd')))} "
        f"unrealized={fmt_usd(_as_float(paper.get('unrealized_pnl_usd')))}"
    )


def _as_float(v: object) -> float | None:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    return float(v)
