"""homeboard - resilient family dashboard backend."""

__version__ = "0.1.0"
