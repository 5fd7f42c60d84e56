"""Manage AI provider profiles and propagate them into AI tool configs."""

__version__ = "1.0.1"
