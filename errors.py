from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when a scenario or solver configuration is invalid"""
    pass


class OutOfRangeError(ValueError):
    """Raised when a terrain query falls outside the terrain's horizontal extent"""
    pass
