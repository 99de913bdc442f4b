"""Configuration for homeboard."""

from homeboard.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
