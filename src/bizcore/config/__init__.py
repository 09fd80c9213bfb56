"""Configuration module for Bizcore."""

from bizcore.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
