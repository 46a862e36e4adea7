"""Aggregations over the family evaluation log: recurrence, per-type averages, edge persistence."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from famscan.storage.family_log import FamilyRow

FAMILY_TYPES = ("bucket", "multi", "single")


@dataclass(frozen=True)
class RecurringFamily:
    family_id: str
    family_type: str
    title: str
    count: int
    avg_score: float
    max_score: float
    last_ts: datetime


@dataclass(frozen=True)
class TypeAverage:
    family_type: str
    avg: float
    n: int


@dataclass(frozen=True)
class Persistence:
    samples: int
    avg_hours: float
    median_hours: float


def aggregate_recurring(rows: Iterable[FamilyRow], limit: int | None = 20) -> list[RecurringFamily]:
    """Families seen most often, then by average score. Title is the latest seen."""
    acc: dict[str, dict] = {}
    for r in rows:
        cur = acc.get(r.family_id)
        if cur is None:
            acc[r.family_id] = {
                "type": r.family_type,
                "title": r.title,
                "sum": r.opportunity_score,
                "count": 1,
                "max": r.opportunity_score,
                "last": r.ts,
            }
            continue
        cur["sum"] += r.opportunity_score
        cur["count"] += 1
        cur["max"] = max(cur["max"], r.opportunity_score)
        cur["title"] = r.title
        cur["type"] = r.family_type
        if r.ts > cur["last"]:
            cur["last"] = r.ts
    out = [
        RecurringFamily(
            family_id=fid,
            family_type=v["type"],
            title=v["title"],
            count=v["count"],
            avg_score=v["sum"] / v["count"],
            max_score=v["max"],
            last_ts=v["last"],
        )
        for fid, v in acc.items()
    ]
    out.sort(key=lambda a: (a.count, a.avg_score), reverse=True)
    return out[:limit] if limit is not None else out


def avg_score_by_type(rows: Iterable[FamilyRow]) -> list[TypeAverage]:
    sums = {t: 0.0 for t in FAMILY_TYPES}
    counts = {t: 0 for t in FAMILY_TYPES}
    for r in rows:
        if r.family_type in sums:
            sums[r.family_type] += r.opportunity_score
            counts[r.family_type] += 1
    return [TypeAverage(t, sums[t] / counts[t] if counts[t] else 0.0, counts[t]) for t in FAMILY_TYPES]


def group_by_scan(rows: Iterable[FamilyRow]) -> dict[datetime, list[FamilyRow]]:
    """Rows keyed by scan timestamp, oldest scan first."""
    by_ts: dict[datetime, list[FamilyRow]] = {}
    for r in rows:
        by_ts.setdefault(r.ts, []).append(r)
    return dict(sorted(by_ts.items()))


def persistence_hours(
    scans: dict[datetime, Sequence[FamilyRow]], top_n: int, threshold: float
) -> Persistence:
    """For each scan's top-N families, hours until the score drops below threshold or the family disappears.

    Edges still alive at the last scan are not sampled.
    """
    times = sorted(scans)
    if len(times) < 2:
        return Persistence(0, 0.0, 0.0)
    by_scan = [{r.family_id: r.opportunity_score for r in scans[t]} for t in times]

    durations: list[float] = []
    for i, t0 in enumerate(times):
        top = sorted(scans[t0], key=lambda r: r.opportunity_score, reverse=True)[:top_n]
        for r0 in top:
            for j in range(i + 1, len(times)):
                score = by_scan[j].get(r0.family_id, -math.inf)
                if not score >= threshold:
                    durations.append((times[j] - t0).total_seconds() / 3600.0)
                    break

    if not durations:
        return Persistence(0, 0.0, 0.0)
    ordered = sorted(durations)
    return Persistence(
        samples=len(durations),
        avg_hours=math.fsum(durations) / len(durations),
        median_hours=ordered[len(ordered) // 2],
    )
