"""Blob store interface for persisted face data."""
from abc import ABC, abstractmethod
from typing import Any


class BlobStore(ABC):
    """Interface for reading and writing whole JSON documents by key."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """
        Check whether a document is stored under the key.

        Args:
            key: Document key, a flat filesystem-safe name

        Returns:
            True if a document exists
        """
        pass

    @abstractmethod
    async def read(self, key: str) -> Any:
        """
        Read and decode a whole document.

        Args:
            key: Document key

        Returns:
            The decoded JSON value

        Raises:
            StorageError: If the document is missing, unreadable or not valid JSON
        """
        pass

    @abstractmethod
    async def write(self, key: str, data: Any) -> None:
        """
        Replace a whole document.

        Readers never see a partially written document.

        Args:
            key: Document key
            data: JSON-serialisable value

        Raises:
            StorageError: If the document cannot be written
        """
        pass
