"""Custom exceptions for Bizcore."""


class BizcoreError(Exception):
    """Base exception for all Bizcore errors."""

    pass


class ConfigurationError(BizcoreError):
    """Error in configuration or settings."""

    pass
