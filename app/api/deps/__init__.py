"""API dependencies."""

from .store import ReadClient, get_read_client

__all__ = [
    "ReadClient",
    "get_read_client",
]
