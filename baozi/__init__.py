"""Baozi prediction-market agent layer."""

__version__ = "0.1.0"
