"""In-memory implementation of the blob store."""
import json
from typing import Any, Dict

from app.core.exceptions import StorageError
from app.domain.interfaces.storage.blob_store import BlobStore


class InMemoryBlobStore(BlobStore):
    """Keeps documents as JSON text in a dict.

    Documents are round-tripped through JSON so callers get the same values a
    file-backed store would return.
    """

    def __init__(self) -> None:
        self.documents: Dict[str, str] = {}
        self.writes = 0

    async def exists(self, key: str) -> bool:
        return key in self.documents

    async def read(self, key: str) -> Any:
        if key not in self.documents:
            raise StorageError(f"Document not found: {key}")
        try:
            return json.loads(self.documents[key])
        except ValueError as e:
            raise StorageError(f"Failed to read {key}: {e}")

    async def write(self, key: str, data: Any) -> None:
        try:
            self.documents[key] = json.dumps(data)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {key}: {e}")
        self.writes += 1
