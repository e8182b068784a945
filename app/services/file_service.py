"""Service for reading media files under the library base path."""
import asyncio
import os
from pathlib import Path
from typing import Iterable, List, Optional

from app.core.exceptions import ImageNotFoundError, PathAccessError
from app.core.logging import get_logger

logger = get_logger(__name__)


class FileService:
    """Service for handling media file operations."""

    def __init__(self, base_path: Path, image_extensions: Optional[Iterable[str]] = None):
        """Initialize the file service.

        Args:
            base_path: Root directory of the media library
            image_extensions: Lowercase extensions (with dot) treated as images
        """
        self.base_path = Path(base_path).resolve()
        self.image_extensions = tuple(image_extensions or (".jpg", ".jpeg", ".png"))

    def resolve(self, filename: str) -> Path:
        """Resolve a relative filename inside the base path.

        Args:
            filename: Path relative to the base path

        Returns:
            Absolute path of the file

        Raises:
            PathAccessError: If the filename points outside the base path
        """
        path = (self.base_path / filename).resolve()
        if path != self.base_path and self.base_path not in path.parents:
            logger.warning("Rejected path outside media base", filename=filename)
            raise PathAccessError(f"Access denied: {filename}", details={"filename": filename})
        return path

    async def get_file_bytes(self, filename: str) -> bytes:
        """Read a media file.

        Args:
            filename: Path relative to the base path

        Returns:
            File bytes

        Raises:
            PathAccessError: If the filename points outside the base path
            ImageNotFoundError: If the file does not exist or cannot be read
        """
        path = self.resolve(filename)
        if not path.is_file():
            raise ImageNotFoundError(f"Image not found: {filename}", details={"filename": filename})
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            logger.error(
                "Failed to read media file",
                filename=filename,
                error=str(e),
                exc_info=True
            )
            raise ImageNotFoundError(f"Image not readable: {filename}: {e}", details={"filename": filename})

    def list_images(self, subdir: str = "") -> List[str]:
        """List image files below the base path, skipping hidden directories.

        Args:
            subdir: Optional directory relative to the base path to restrict the walk

        Returns:
            Sorted filenames relative to the base path, with forward slashes
        """
        root = self.resolve(subdir) if subdir else self.base_path
        found = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]
            for fn in filenames:
                if fn.lower().endswith(self.image_extensions):
                    rel = (Path(dirpath) / fn).relative_to(self.base_path)
                    found.append(rel.as_posix())
        return sorted(found)
