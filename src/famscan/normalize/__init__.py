"""Normalization: raw records -> canonical markets, range parsing, family grouping."""

from famscan.normalize.families import build_families
from famscan.normalize.markets import normalize_markets
from famscan.normalize.ranges import (
    parse_range_from_text,
    parse_range_with_confidence,
    remove_first_range_for_grouping,
)

__all__ = [
    "normalize_markets",
    "build_families",
    "parse_range_from_text",
    "parse_range_with_confidence",
    "remove_first_range_for_grouping",
]
