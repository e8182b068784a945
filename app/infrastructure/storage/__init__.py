"""Blob store implementations."""
from .local_json import LocalJsonStore
from .memory import InMemoryBlobStore

__all__ = ["LocalJsonStore", "InMemoryBlobStore"]
