"""Incremental Windows repair-source (WRS) builder."""

__version__ = "1.0.0"
