"""Configuration: environment settings, logging, and scoring tables."""

from evidence_engine.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
