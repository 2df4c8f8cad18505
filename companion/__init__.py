"""Companion -- a streaming life-assistant agent with server-side tools."""

__version__ = "0.1.0"
