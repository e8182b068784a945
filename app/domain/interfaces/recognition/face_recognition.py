"""Face recognition service interface."""
from abc import ABC, abstractmethod

from ...value_objects.recognition import DetectionResult


class FaceRecognitionService(ABC):
    """Interface for face detection operations."""

    @abstractmethod
    async def detect_faces(self, image_bytes: bytes) -> DetectionResult:
        """
        Detect faces in the provided image and extract their embeddings.

        Implementations are responsible for any resizing needed before
        detection. Bounding boxes are in pixels of the image actually
        submitted to the detector.

        Args:
            image_bytes: Raw image data

        Returns:
            DetectionResult with zero or more faces, in detection order

        Raises:
            InvalidImageError: If the image cannot be decoded
            ModelLoadError: If the detection model is not available
        """
        pass
