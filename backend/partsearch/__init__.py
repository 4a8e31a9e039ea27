"""Multi-supplier auto part search backend."""

__version__ = "1.0.0"
