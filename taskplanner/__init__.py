"""A web task scheduler with repeating tasks, backed by SQLite."""

__version__ = "0.1.0"