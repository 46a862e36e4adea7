"""Ranking of scored families."""

from famscan.score.rank import QualityGate, rank_families

__all__ = ["QualityGate", "rank_families"]
