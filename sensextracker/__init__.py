"""Sensex Options Tracker - trailing stop-loss tracking for Sensex options."""

__version__ = "0.1.0"
