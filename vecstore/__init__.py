"""Persistent vector storages with similarity scoring, plus segment, payload and filter types."""

__version__ = "0.2.0"