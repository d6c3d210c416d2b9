"""Footprint benchmark for embedded key-value stores."""

__version__ = "0.1.0"
