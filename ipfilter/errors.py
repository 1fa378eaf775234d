from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when a filter configuration cannot be compiled.

    Covers malformed addresses, CIDR blocks, range endpoints, regular
    expressions and modes. Always raised at construction time.
    """
