"""Utility modules for Bizcore."""

from bizcore.utils.exceptions import BizcoreError, ConfigurationError

__all__ = [
    "BizcoreError",
    "ConfigurationError",
]
