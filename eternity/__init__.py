"""Eternity: real-time strategy simulation core."""

__version__ = "0.1.0"
