"""
Error types for token counting.

Counting is pure computation, so every failure here is a caller or
configuration problem. Nothing is retried.
"""


class ConfigurationError(ValueError):
    """Raised for an unknown model or a family whose vocabulary cannot be used."""
