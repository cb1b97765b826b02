"""Context-marker (V4A) and SEARCH/REPLACE patch application for coding agents."""

__version__ = "0.1.0"
