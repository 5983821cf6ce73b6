"""Configuration utilities for Pagecomposer."""

from .loader import (
    AssemblySettings,
    Config,
    DiscoverySettings,
    LoggingSettings,
    OutputSettings,
    PreferenceSettings,
    load_config,
)

__all__ = [
    "AssemblySettings",
    "Config",
    "DiscoverySettings",
    "LoggingSettings",
    "OutputSettings",
    "PreferenceSettings",
    "load_config",
]
