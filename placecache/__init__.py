"""Two-tier, similarity-aware cache for place autocomplete search."""

__version__ = "0.3.0"
