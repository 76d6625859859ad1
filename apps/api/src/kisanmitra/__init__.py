"""KisanMitra - farming assistant API."""

__version__ = "0.3.0"
