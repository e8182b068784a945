"""Local filesystem implementation of the blob store."""
import asyncio
import hashlib
import json
import os
from pathlib import Path
from typing import Any

from app.core.exceptions import StorageError
from app.core.logging import get_logger
from app.domain.interfaces.storage.blob_store import BlobStore

logger = get_logger(__name__)

# Leaves room for the ".tmp" suffix under the common 255-byte file name limit
MAX_NAME_BYTES = 200


class LocalJsonStore(BlobStore):
    """Stores each document as a pretty-printed JSON file in one directory.

    Writes go to a temporary sibling file that is then renamed over the
    target, so readers see either the old or the new document.
    """

    def __init__(self, root: Path) -> None:
        """Initialize the store, creating the directory if needed.

        Args:
            root: Directory holding the JSON documents
        """
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create faces directory {self.root}: {e}")
        logger.info("Local JSON store initialized", root=str(self.root))

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            raise StorageError(f"Invalid document key: {key!r}")
        return self.root / self.file_name(key)

    @staticmethod
    def file_name(key: str) -> str:
        """File name for a key.

        Keys too long for the filesystem keep a readable prefix and get a
        digest of the full key in place of the rest.
        """
        encoded = key.encode("utf-8")
        if len(encoded) <= MAX_NAME_BYTES:
            return key
        stem, suffix = os.path.splitext(key)
        if len(suffix.encode("utf-8")) > 16:
            stem, suffix = key, ""
        digest = hashlib.sha256(encoded).hexdigest()[:32]
        budget = MAX_NAME_BYTES - len(digest) - len(suffix.encode("utf-8")) - 1
        prefix = stem.encode("utf-8")[:max(budget, 0)].decode("utf-8", errors="ignore")
        return f"{prefix}-{digest}{suffix}"

    async def exists(self, key: str) -> bool:
        path = self._path(key)
        try:
            return path.is_file()
        except OSError as e:
            raise StorageError(f"Cannot stat {path.name}: {e}")

    async def read(self, key: str) -> Any:
        path = self._path(key)
        return await asyncio.to_thread(self._read_sync, path)

    async def write(self, key: str, data: Any) -> None:
        path = self._path(key)
        await asyncio.to_thread(self._write_sync, path, data)

    @staticmethod
    def _read_sync(path: Path) -> Any:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise StorageError(f"Document not found: {path.name}")
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read {path.name}: {e}")

    @staticmethod
    def _write_sync(path: Path, data: Any) -> None:
        tmp = path.with_name(path.name + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to write document", path=str(path), error=str(e))
            try:
                tmp.unlink()
            except OSError:
                pass
            raise StorageError(f"Failed to write {path.name}: {e}")
