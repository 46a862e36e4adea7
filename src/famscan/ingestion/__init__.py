"""Market discovery from the Polymarket Gamma API."""

from famscan.ingestion.gamma import FetchResult, GammaClient, extract_markets_array, fetch_markets

__all__ = ["FetchResult", "GammaClient", "extract_markets_array", "fetch_markets"]
