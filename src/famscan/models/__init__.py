"""Canonical schema (Pydantic) - raw/normalized markets, families, scores."""

from famscan.models.family import (
    BestCluster,
    BucketOutcome,
    FamilyType,
    FeatureSet,
    MarketFamily,
    MultiOutcome,
    ParsedRange,
    RangeParseResult,
    ScoredFamily,
    SingleOutcome,
)
from famscan.models.market import NormalizedMarket, NormalizeStats, RawMarketRecord

__all__ = [
    "RawMarketRecord",
    "NormalizedMarket",
    "NormalizeStats",
    "ParsedRange",
    "RangeParseResult",
    "BucketOutcome",
    "MultiOutcome",
    "SingleOutcome",
    "MarketFamily",
    "FamilyType",
    "BestCluster",
    "FeatureSet",
    "ScoredFamily",
]
