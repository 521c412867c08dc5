"""Configuration package."""

from market_indexer.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
