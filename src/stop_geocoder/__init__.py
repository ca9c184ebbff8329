"""Multi-provider address geocoding with a durable, correctable cache."""

__version__ = "0.1.0"
