"""Bullion registry — validator quorum certification for precious-metal claims."""

__version__ = "0.1.0"
