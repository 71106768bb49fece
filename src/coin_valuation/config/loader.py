"""Load YAML configuration bundles for the analysis engine."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..errors import ConfigError

CONFIG_DIR = Path("configs")

Basket = Literal["bitcoin", "blue_chip", "small_cap", "index"]


class ProviderConfig(BaseModel):
    id: str = Field(..., description="Provider identifier, e.g., yahoo")
    module: str = Field(..., description="Python path to provider implementation")
    retries: int = 3
    timeout: int = 30
    max_workers: int = 4
    base_url: Optional[str] = None


class BetaConfig(BaseModel):
    min_observations: int = 24
    high_r_squared: float = 0.6
    high_observations: int = 36
    medium_r_squared: float = 0.4
    medium_observations: int = 24


class LiquidityConfig(BaseModel):
    premiums: Dict[str, float] = Field(
        default_factory=lambda: {"liquid": 0.02, "moderate": 0.05, "illiquid": 0.15}
    )
    bitcoin_thresholds: Dict[str, float] = Field(
        default_factory=lambda: {"liquid": 2_000_000_000, "moderate": 500_000_000}
    )
    altcoin_thresholds: Dict[str, float] = Field(
        default_factory=lambda: {"liquid": 500_000_000, "moderate": 100_000_000}
    )
    lookback_days: int = 30


class ValuationConfig(BaseModel):
    undervalued_below: float = 0.8
    overvalued_above: float = 2.5
    undervalued_adjustment: float = -0.02
    overvalued_adjustment: float = 0.03


class IRRConfig(BaseModel):
    lower: float = -0.99
    upper: float = 10.0
    tolerance: float = 1e-7
    max_iterations: int = 200


class MonteCarloConfig(BaseModel):
    simulations: int = 10_000
    steps_per_year: int = 12
    confidence: float = 0.90
    seed: Optional[int] = 42


class QualityConfig(BaseModel):
    min_years: float = 3.0
    min_completeness: float = 0.8


class BenchmarkFallback(BaseModel):
    current_value: float
    cagr: float
    volatility: float


class FallbackPolicy(BaseModel):
    default_beta: float = 1.0
    benchmarks: Dict[str, BenchmarkFallback] = Field(
        default_factory=lambda: {
            "SP500": BenchmarkFallback(current_value=4500, cagr=0.085, volatility=0.16),
            "BTC": BenchmarkFallback(current_value=50_000, cagr=0.40, volatility=0.80),
        }
    )


class BenchmarkEntry(BaseModel):
    name: str
    ticker: str


class AnalysisConfig(BaseModel):
    name: str = "default"
    risk_free_rate: float = 0.045
    risk_free_ticker: Optional[str] = "^TNX"
    history_years: int = 5
    terminal_growth: float = 0.0
    market_returns: Dict[str, float] = Field(default_factory=lambda: {"SP500": 0.10, "BTC": 0.15})
    beta: BetaConfig = Field(default_factory=BetaConfig)
    liquidity: LiquidityConfig = Field(default_factory=LiquidityConfig)
    valuation: ValuationConfig = Field(default_factory=ValuationConfig)
    irr: IRRConfig = Field(default_factory=IRRConfig)
    monte_carlo: MonteCarloConfig = Field(default_factory=MonteCarloConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    fallbacks: FallbackPolicy = Field(default_factory=FallbackPolicy)
    benchmarks: Dict[str, BenchmarkEntry] = Field(
        default_factory=lambda: {
            "SP500": BenchmarkEntry(name="S&P 500", ticker="^GSPC"),
            "BTC": BenchmarkEntry(name="Bitcoin", ticker="BTC-USD"),
        }
    )
    cache_ttl_seconds: float = 3600
    fallback_ttl_seconds: float = 60


class CoinEntry(BaseModel):
    symbol: str
    name: str
    ticker: str
    basket: Basket = "small_cap"
    staking_yield: float = 0.0


class UniverseConfig(BaseModel):
    name: str
    description: str = ""
    coins: list[CoinEntry]

    def find(self, symbol: str) -> CoinEntry:
        wanted = symbol.upper()
        for coin in self.coins:
            if coin.symbol.upper() == wanted:
                return coin
        raise ConfigError(f"Coin {symbol} is not in universe {self.name}", {"symbol": symbol})


class ConfigBundle(BaseModel):
    provider: ProviderConfig
    analysis: AnalysisConfig
    universe: UniverseConfig


def load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file {path} not found", {"path": str(path)})
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _merge_dict(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge_dict(base.get(key, {}), value)
        else:
            base[key] = value
    return base


def load_config_bundle(
    provider_path: Path | None = None,
    analysis_path: Path | None = None,
    universe_path: Path | None = None,
    analysis_overrides: Dict[str, Any] | None = None,
) -> ConfigBundle:
    provider_cfg = load_yaml(provider_path or CONFIG_DIR / "providers.yml")
    analysis_cfg = load_yaml(analysis_path or CONFIG_DIR / "analysis" / "default.yml")
    universe_cfg = load_yaml(universe_path or CONFIG_DIR / "universe" / "coins.yml")
    analysis_section = analysis_cfg.get("analysis", {})
    if analysis_overrides:
        analysis_section = _merge_dict(analysis_section, analysis_overrides)
    try:
        return ConfigBundle(
            provider=ProviderConfig(**provider_cfg["providers"][0]),
            analysis=AnalysisConfig(**analysis_section),
            universe=UniverseConfig(**universe_cfg["universe"]),
        )
    except (KeyError, IndexError, ValidationError) as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
