"""Recurring job host: APScheduler hosted in a background service with attribute-driven job registration."""

__version__ = "0.1.0"
