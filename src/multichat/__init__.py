"""Multichat: site-grounded support chat."""

__version__ = "0.1.0"
