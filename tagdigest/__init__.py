"""Periodic AI digests of [Project] tagged Discord messages."""

__version__ = "0.1.0"
