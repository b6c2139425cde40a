"""Offer XML Pipeline API."""

__version__ = "0.1.0"
