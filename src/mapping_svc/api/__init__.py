"""HTTP API for metadata introspection."""

from .routes import configure, router

__all__ = ["configure", "router"]
