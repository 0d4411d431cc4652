"""API routers for all endpoints."""

from perfcapture.routers import capture, system

__all__ = ["capture", "system"]
