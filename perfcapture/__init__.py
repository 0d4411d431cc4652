"""Realtime performance capture from a cloud monitoring API."""

__version__ = "0.1.0"
