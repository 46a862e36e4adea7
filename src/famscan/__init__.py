"""famscan - structural anomaly scanner for prediction-market families."""

__version__ = "0.1.0"
