"""Presence Node server: shared presence registry with change-detection polling."""

__version__ = "0.1.0"
