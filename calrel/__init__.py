"""calrel - date-based release automation."""

__version__ = "20250601.0.0"
