"""Checkpointed batch processing over directory trees."""

__version__ = "0.1.0"
