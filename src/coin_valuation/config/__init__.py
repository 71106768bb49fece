"""Configuration loading."""

from .loader import (
    AnalysisConfig,
    CoinEntry,
    ConfigBundle,
    ProviderConfig,
    UniverseConfig,
    load_config_bundle,
)

__all__ = [
    "AnalysisConfig",
    "CoinEntry",
    "ConfigBundle",
    "ProviderConfig",
    "UniverseConfig",
    "load_config_bundle",
]
