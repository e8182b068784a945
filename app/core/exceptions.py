"""Custom exceptions for the face groups service."""
from typing import Optional


class FaceRecognitionError(Exception):
    """Base exception for face recognition operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize face recognition error.

        Args:
            message: Error description
            details: Additional error context
        """
        super().__init__(message)
        self.details = details or {}


class InvalidImageError(FaceRecognitionError):
    """Raised when the provided image is invalid or cannot be processed."""
    pass


class ImageNotFoundError(FaceRecognitionError):
    """Raised when an image does not exist under the media base path."""
    pass


class PathAccessError(FaceRecognitionError):
    """Raised when a filename resolves outside the media base path."""
    pass


class ModelLoadError(FaceRecognitionError):
    """Raised when the face recognition model fails to load."""
    pass


class DetectionTimeoutError(FaceRecognitionError):
    """Raised when face detection exceeds the configured timeout."""
    pass


class StorageError(FaceRecognitionError):
    """Raised when persisted face data cannot be read or written."""
    pass


class ServiceNotInitializedError(FaceRecognitionError):
    """Raised when a service is requested before the container is initialized."""
    pass


class EmbeddingMismatchError(FaceRecognitionError):
    """Raised when a face embedding cannot be compared with the stored groups."""
    pass
