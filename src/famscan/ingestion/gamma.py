"""Polymarket Gamma API client - paginated market discovery, raw records kept verbatim."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

import httpx
import structlog

log = structlog.get_logger(__name__)

GAMMA_BASE_URL = "https://gamma-api.polymarket.com"
ARRAY_KEYS = ("markets", "data", "results")

StopReason = Literal["short_page", "max_pages", "max_markets"]


def extract_markets_array(payload: Any) -> list[Any]:
    """Market list from a /markets response: a bare list, or a list under markets/data/results."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ARRAY_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


class GammaClient:
    """Thin sync wrapper over GET /markets. Use as a context manager or call close()."""

    def __init__(
        self,
        base_url: str = GAMMA_BASE_URL,
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def fetch_markets_page(self, limit: int, offset: int) -> Any:
        params = {"active": "true", "closed": "false", "limit": limit, "offset": offset}
        resp = self._client.get("/markets", params=params)
        resp.raise_for_status()
        return resp.json()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GammaClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


@dataclass(frozen=True)
class FetchResult:
    raw: list[Any]
    pages_fetched: int
    stop_reason: StopReason
    fetched_at: datetime
    limit_per_page: int = 200
    max_pages: int = 10
    max_markets: int | None = None


def fetch_markets(
    client: GammaClient,
    limit_per_page: int = 200,
    max_pages: int = 10,
    max_markets: int | None = None,
) -> FetchResult:
    """Page through /markets until a short page, the page cap or the market cap."""
    fetched_at = datetime.now(timezone.utc)
    raw: list[Any] = []
    pages = 0
    stop_reason: StopReason = "max_pages"
    for page in range(max_pages):
        offset = page * limit_per_page
        arr = extract_markets_array(client.fetch_markets_page(limit_per_page, offset))
        pages += 1
        raw.extend(arr)
        log.debug("scan_fetch_page", page=page, offset=offset, count=len(arr), total=len(raw))
        if max_markets is not None and len(raw) >= max_markets:
            raw = raw[:max_markets]
            stop_reason = "max_markets"
            break
        if len(arr) < limit_per_page:
            stop_reason = "short_page"
            break
    log.info("scan_fetch_done", markets=len(raw), pages=pages, stop_reason=stop_reason)
    return FetchResult(
        raw=raw,
        pages_fetched=pages,
        stop_reason=stop_reason,
        fetched_at=fetched_at,
        limit_per_page=limit_per_page,
        max_pages=max_pages,
        max_markets=max_markets,
    )


def load_markets_file(path: str) -> list[Any]:
    """Raw markets from a saved JSON file (same shapes the API returns)."""
    with open(path, encoding="utf-8") as f:
        return extract_markets_array(json.load(f))
