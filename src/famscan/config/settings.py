"""TOML config loading and profiles."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from famscan.paper.portfolio import PaperConfig
from famscan.score.rank import QualityGate

# Default config search path (project root or cwd)
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"

PROFILE_ENV = "FAMSCAN_PROFILE"


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir(config_dir: Path | None = None) -> Path:
    if config_dir is not None:
        return config_dir
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def _clamp_int(value: Any, default: int, lo: int, hi: int) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return max(lo, min(hi, n))


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml and optional profile overlay."""
    directory = _find_config_dir(config_dir)
    default_path = directory / "default.toml"
    base = _load_toml(default_path) if default_path.exists() else {}
    profile = profile or os.environ.get(PROFILE_ENV) or None
    if profile:
        profile_path = directory / f"{profile}.toml"
        if profile_path.exists():
            base = _deep_merge(base, _load_toml(profile_path))
    return base


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Return Settings instance from merged config."""
    return Settings.from_dict(load_config(profile, config_dir))


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        gamma: dict[str, Any] | None = None,
        storage: dict[str, Any] | None = None,
        ranking: dict[str, Any] | None = None,
        paper: dict[str, Any] | None = None,
        dashboard: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.gamma = gamma or {}
        self.storage = storage or {}
        self.ranking = ranking or {}
        self.paper = paper or {}
        self.dashboard = dashboard or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            gamma=raw.get("gamma"),
            storage=raw.get("storage"),
            ranking=raw.get("ranking"),
            paper=raw.get("paper"),
            dashboard=raw.get("dashboard"),
            logging=raw.get("logging"),
        )

    # Convenience accessors with defaults
    @property
    def gamma_api_base(self) -> str:
        return self.gamma.get("base_url", "https://gamma-api.polymarket.com")

    @property
    def gamma_timeout_sec(self) -> float:
        return float(self.gamma.get("timeout_sec", 20.0))

    @property
    def limit_per_page(self) -> int:
        return _clamp_int(self.gamma.get("limit_per_page"), 200, 1, 500)

    @property
    def max_pages(self) -> int:
        return _clamp_int(self.gamma.get("max_pages"), 10, 1, 500)

    @property
    def max_markets(self) -> int | None:
        raw = self.gamma.get("max_markets")
        return _clamp_int(raw, 0, 1, 1_000_000) if raw else None

    @property
    def data_dir(self) -> Path:
        return Path(self.storage.get("data_dir", "data"))

    @property
    def db_path(self) -> str:
        return self.storage.get("db_path", str(self.data_dir / "db" / "famscan.duckdb"))

    @property
    def families_path(self) -> Path:
        return self.data_dir / "out" / "families.json"

    @property
    def dashboard_path(self) -> Path:
        return self.data_dir / "out" / "dashboard.json"

    @property
    def heartbeat_path(self) -> Path:
        return self.data_dir / "db" / "last_scan.json"

    @property
    def raw_markets_path(self) -> Path:
        return self.data_dir / "raw" / "markets_raw.json"

    @property
    def prices_path(self) -> Path:
        return self.data_dir / "raw" / "prices_raw.json"

    @property
    def quality_gate(self) -> QualityGate:
        r = self.ranking
        return QualityGate(
            min_valid_prices=int(r.get("min_valid_prices", 6)),
            max_missing_prices=int(r.get("max_missing_prices", 2)),
            max_gaps=int(r.get("max_gaps", 2)),
            max_overlaps=int(r.get("max_overlaps", 0)),
            min_liquidity=float(r.get("min_liquidity", 500.0)),
        )

    @property
    def paper_enabled(self) -> bool:
        return bool(self.paper.get("enabled", False))

    @property
    def paper_config(self) -> PaperConfig:
        p = self.paper
        return PaperConfig(
            bankroll_start_usd=float(p.get("bankroll_start_usd", 500.0)),
            max_new_trades_per_scan=int(p.get("max_new_trades_per_scan", 2)),
            max_trade_usd=float(p.get("max_trade_usd", 25.0)),
            max_exposure_pct=float(p.get("max_exposure_pct", 0.3)),
            cooldown_hours=float(p.get("cooldown_hours", 6.0)),
            take_profit_move=float(p.get("take_profit_move", 0.02)),
            stop_loss_move=float(p.get("stop_loss_move", -0.02)),
            max_hold_hours=float(p.get("max_hold_hours", 24.0)),
        )

    @property
    def dashboard_top_n(self) -> int:
        return _clamp_int(self.dashboard.get("top_n"), 10, 1, 100)

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry."""
    import sys

    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )
