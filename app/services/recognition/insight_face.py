"""
InsightFace-based implementation of face recognition service.

This module provides a concrete implementation of the face recognition service
using the InsightFace library. It decodes image bytes, caps the longest image
side, detects faces and returns their pixel bounding boxes and embeddings.

Example:
    ```python
    service = InsightFaceRecognitionService()

    with open("image.jpg", "rb") as f:
        result = await service.detect_faces(f.read())
    ```

Note:
    The model is loaded on first use. When the model or its weights cannot be
    loaded, every detection raises ModelLoadError and the next call retries.
"""
import asyncio
from typing import Any, List, Optional

import cv2
import numpy as np

from app.core.config import settings
from app.core.exceptions import InvalidImageError, ModelLoadError
from app.core.logging import get_logger
from app.domain.entities.face import BoundingBox, Face
from app.domain.interfaces.recognition.face_recognition import FaceRecognitionService
from app.domain.value_objects.recognition import DetectionResult

logger = get_logger(__name__)


class InsightFaceRecognitionService(FaceRecognitionService):
    """
    InsightFace-based implementation of face recognition service.

    Attributes:
        model: InsightFace FaceAnalysis instance, None until loaded
        model_name: InsightFace model package name
        max_dimension: Longest image side submitted to the detector
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        max_dimension: Optional[int] = None,
        det_size: Optional[int] = None,
    ) -> None:
        """Configure the service without loading the model."""
        self.model: Any = None
        self.model_name = model_name or settings.MODEL_NAME
        self.max_dimension = max_dimension or settings.MAX_IMAGE_DIMENSION
        self.det_size = det_size or settings.DETECTION_SIZE
        self._load_lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self.model is not None

    async def load_model(self) -> None:
        """Load the InsightFace model if it is not loaded yet.

        Raises:
            ModelLoadError: If insightface is not installed or the weights fail to load
        """
        async with self._load_lock:
            if self.model is not None:
                return
            self.model = await asyncio.to_thread(self._build_model)
            logger.info("Face detection model loaded", model=self.model_name)

    def _build_model(self) -> Any:
        try:
            from insightface.app import FaceAnalysis
        except ImportError as e:
            raise ModelLoadError(
                "insightface is not installed; install face-groups[detector] to enable face detection",
                details={"model": self.model_name}
            ) from e
        try:
            model = FaceAnalysis(
                name=self.model_name,
                root=settings.MODEL_CACHE_DIR,
                providers=['CPUExecutionProvider']
            )
            model.prepare(ctx_id=-1, det_size=(self.det_size, self.det_size))
            return model
        except Exception as e:
            logger.error(
                "Failed to load face detection model",
                model=self.model_name,
                error=str(e),
                exc_info=True
            )
            raise ModelLoadError(
                f"Face detection model {self.model_name} could not be loaded: {e}",
                details={"model": self.model_name}
            ) from e

    def _load_image(self, image_bytes: bytes) -> np.ndarray:
        """Decode image bytes and shrink so the longest side fits max_dimension."""
        nparr = np.frombuffer(image_bytes, np.uint8)
        img = cv2.imdecode(nparr, cv2.IMREAD_COLOR) if nparr.size else None

        if img is None:
            raise InvalidImageError("Failed to decode image")

        height, width = img.shape[:2]
        longest = max(height, width)
        if longest > self.max_dimension:
            scale = self.max_dimension / longest
            new_width = max(1, int(round(width * scale)))
            new_height = max(1, int(round(height * scale)))

            logger.debug(
                "Resizing large image",
                original_size=(width, height),
                new_size=(new_width, new_height)
            )

            img = cv2.resize(
                img,
                (new_width, new_height),
                interpolation=cv2.INTER_AREA
            )

        return img

    @staticmethod
    def _convert_to_face(face_data: Any) -> Face:
        """Convert an InsightFace detection to our Face domain model."""
        x1, y1, x2, y2 = (float(v) for v in face_data.bbox)
        embedding = face_data.normed_embedding
        if embedding is None:
            embedding = face_data.embedding
        return Face(
            box=BoundingBox(x=x1, y=y1, width=x2 - x1, height=y2 - y1),
            embedding=embedding
        )

    async def detect_faces(self, image_bytes: bytes) -> DetectionResult:
        """Detect faces and extract embeddings off the event loop."""
        await self.load_model()
        img = await asyncio.to_thread(self._load_image, image_bytes)

        logger.debug("Processing image", image_shape=img.shape)
        faces: List[Any] = await asyncio.to_thread(self.model.get, img)
        faces = [f for f in faces or [] if getattr(f, "embedding", None) is not None]

        logger.debug("Face detection results", faces_found=len(faces))
        return DetectionResult(faces=[self._convert_to_face(face) for face in faces])
