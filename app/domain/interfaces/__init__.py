"""Service interfaces package."""
from .recognition import FaceRecognitionService
from .storage import BlobStore

__all__ = ["FaceRecognitionService", "BlobStore"]
