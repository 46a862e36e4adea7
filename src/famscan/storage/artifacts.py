"""JSON artifacts written per scan: ranked families, dashboard, heartbeat, prices snapshot."""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from famscan.models import NormalizedMarket, ScoredFamily

HIGH_QUALITY_MIN_PRICES = 6
NO_QUALITY_BUCKETS_WARNING = (
    "No high quality bucket families in this scan window; "
    "consider increasing coverage or targeting categories."
)


def write_json_file(path: str | Path, payload: Any) -> None:
    """Write payload as indented JSON, creating parent dirs. Replaces the file atomically."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_suffix(target.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, default=str) + "\n", encoding="utf-8")
    tmp.replace(target)


def read_json_file(path: str | Path) -> Any | None:
    """Parsed JSON, or None if the file is missing or not valid JSON."""
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None


def families_payload(ranked: Iterable[ScoredFamily]) -> list[dict[str, Any]]:
    return [f.model_dump(mode="json") for f in ranked]


def prices_snapshot(markets: Iterable[NormalizedMarket], ts: datetime) -> dict[str, Any]:
    """Per-market outcome prices for later paper marking."""
    return {
        "timestamp": ts.isoformat(),
        "prices": [
            {
                "market_id": m.market_id,
                "outcomes": list(m.outcomes),
                "outcome_prices": [m.prices.get(name) for name in m.outcomes],
            }
            for m in markets
            if m.outcomes
        ],
    }


def top_families(ranked: Sequence[ScoredFamily], top_n: int) -> list[ScoredFamily]:
    """Top bucket and multi families, backfilled with singles so the list is never blank."""
    picked = [f for f in ranked if f.family_type in ("bucket", "multi")][:top_n]
    if len(picked) < top_n:
        picked.extend([f for f in ranked if f.family_type == "single"][: top_n - len(picked)])
    return picked


def dashboard_entry(f: ScoredFamily) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "family_id": f.family_id,
        "family_type": f.family_type,
        "title": f.title,
        "opportunity_score": f.opportunity_score,
        "reasons": list(f.reasons),
    }
    if f.family_type == "bucket":
        feats = f.features
        entry["features"] = {
            "overround": feats.overround if feats else None,
            "max_spike": feats.max_spike if feats else None,
            "best_cluster_z": feats.best_cluster_z if feats else None,
            "liquidity_max": feats.liquidity_max if feats else None,
            "valid_prices": feats.valid_prices if feats else None,
            "missing_prices": feats.missing_prices if feats else None,
        }
    return entry


def scan_warnings(scored: Iterable[ScoredFamily]) -> list[str]:
    buckets = [f for f in scored if f.family_type == "bucket"]
    quality = [f for f in buckets if f.features and f.features.valid_prices >= HIGH_QUALITY_MIN_PRICES]
    if buckets and not quality:
        return [NO_QUALITY_BUCKETS_WARNING]
    return []


def build_dashboard(
    *,
    ts: datetime,
    scan: dict[str, Any],
    scored: Sequence[ScoredFamily],
    ranked: Sequence[ScoredFamily],
    top_n: int = 10,
    paper: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Dashboard document: scan stats, type counts, warnings, top families, optional paper block."""
    counts = {"bucket": 0, "multi": 0, "single": 0}
    for f in scored:
        counts[f.family_type] += 1
    buckets = [f for f in scored if f.family_type == "bucket"]
    dashboard: dict[str, Any] = {
        "timestamp": ts.isoformat(),
        "scan": {
            **scan,
            "families": len(scored),
            "bucket_families": len(buckets),
            "bucket_families_with_6_valid_prices": sum(
                1 for f in buckets if f.features and f.features.valid_prices >= HIGH_QUALITY_MIN_PRICES
            ),
            "family_type_counts": counts,
        },
        "warnings": scan_warnings(scored),
        "top_families": [dashboard_entry(f) for f in top_families(ranked, top_n)],
    }
    if paper is not None:
        dashboard["paper"] = paper
    return dashboard


def heartbeat(
    *,
    ts: datetime,
    fetched: int,
    parsed: int,
    normalized: int,
    families: int,
    bucket_families: int,
    top_score: float | None,
) -> dict[str, Any]:
    """Small last-scan record for liveness checks."""
    return {
        "timestamp": ts.isoformat(),
        "fetched": fetched,
        "parsed": parsed,
        "normalized": normalized,
        "families": families,
        "bucket_families": bucket_families,
        "top_score": top_score,
    }
