"""ParsedRange, MarketFamily, FeatureSet, ScoredFamily - family-level entities."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

FamilyType = Literal["bucket", "multi", "single"]
RangeUnit = Literal["$", "%", "°c", "°f"]


class ParsedRange(BaseModel):
    """Numeric range extracted from free text (low < high)."""

    model_config = ConfigDict(frozen=True)

    low: float
    high: float
    unit: RangeUnit | None = None
    normalized_label: str

    @model_validator(mode="after")
    def _check_order(self) -> ParsedRange:
        if not self.low < self.high:
            raise ValueError("low must be strictly less than high")
        return self


class RangeParseResult(BaseModel):
    """A parsed range plus its heuristic confidence."""

    model_config = ConfigDict(frozen=True)

    range: ParsedRange
    confidence: int
    reasons: tuple[str, ...] = ()


class BucketOutcome(BaseModel):
    """One binary market bound into a bucket family."""

    model_config = ConfigDict(frozen=True)

    market_id: str
    label: str
    range: ParsedRange
    yes_price: float | None = None
    liquidity: float | None = None
    volume: float | None = None
    confidence: int = 0


class MultiOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    price: float | None = None


class SingleOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    market_id: str
    yes_price: float | None = None
    liquidity: float | None = None
    volume: float | None = None


class MarketFamily(BaseModel):
    """Group of related markets scored as one unit. Exactly one payload matches family_type."""

    model_config = ConfigDict(frozen=True)

    family_id: str
    family_type: FamilyType
    title: str
    num_outcomes: int = Field(..., ge=0)
    event_id: str | None = None
    buckets: tuple[BucketOutcome, ...] | None = None
    multi: tuple[MultiOutcome, ...] | None = None
    single: SingleOutcome | None = None

    @model_validator(mode="after")
    def _check_payload(self) -> MarketFamily:
        payloads = {
            "bucket": self.buckets,
            "multi": self.multi,
            "single": self.single,
        }
        present = [name for name, value in payloads.items() if value is not None]
        if present != [self.family_type]:
            raise ValueError(f"{self.family_type} family must carry only its own payload, got {present}")
        if self.buckets is not None and len(self.buckets) < 2:
            raise ValueError("bucket family needs at least 2 buckets")
        return self


class BestCluster(BaseModel):
    """Contiguous run of buckets that looks cheapest against its local window."""

    model_config = ConfigDict(frozen=True)

    labels: tuple[str, ...]
    cost: float
    ratio: float
    z: float


class FeatureSet(BaseModel):
    """Structural features of a bucket family. None where undefined."""

    model_config = ConfigDict(frozen=True)

    valid_prices: int
    missing_prices: int
    gap_count: int
    overlap_count: int
    liquidity_max: float | None = None
    volume_max: float | None = None
    overround: float | None = None
    max_spike: float | None = None
    best_cluster: BestCluster | None = None
    best_cluster_ratio: float | None = None
    best_cluster_z: float | None = None


class ScoredFamily(MarketFamily):
    """MarketFamily with features, opportunity score and human-readable reasons."""

    features: FeatureSet | None = None
    opportunity_score: float = Field(0.0, ge=0, le=1)
    reasons: tuple[str, ...] = ()
