"""Structural anomaly detection over market families."""

from famscan.detect.anomalies import ScoreWeights, is_valid_prob, score_families

__all__ = ["ScoreWeights", "is_valid_prob", "score_families"]
