"""Shipping rate engine and rule service."""

__version__ = "1.0.0"
