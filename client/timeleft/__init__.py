"""Async client for the Timeleft dinner-events API."""

__version__ = "1.0.0"
