"""Disk-backed cache for optimized web assets."""

__version__ = "0.1.0"
