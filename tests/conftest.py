"""Shared fixtures: a scripted face detector and an isolated media library."""
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from app.core.exceptions import InvalidImageError, ModelLoadError
from app.domain.entities.face import BoundingBox, Face
from app.domain.interfaces.recognition.face_recognition import FaceRecognitionService
from app.domain.value_objects.recognition import DetectionResult
from app.infrastructure.storage import InMemoryBlobStore
from app.services.face_grouping import FaceGroupingService
from app.services.file_service import FileService

DIM = 128


def vec(*head: float, dim: int = DIM) -> List[float]:
    """Embedding starting with the given values, padded with zeros."""
    return list(head) + [0.0] * (dim - len(head))


class FakeRecognitionService(FaceRecognitionService):
    """Detector whose output is scripted per image content.

    Image files in tests contain a short token; ``faces_by_token`` maps that
    token to the embeddings the detector should report.
    """

    def __init__(self) -> None:
        self.faces_by_token: Dict[bytes, List[List[float]]] = {}
        self.calls: List[bytes] = []
        self.unavailable = False

    async def detect_faces(self, image_bytes: bytes) -> DetectionResult:
        self.calls.append(image_bytes)
        if self.unavailable:
            raise ModelLoadError("model not loaded")
        if image_bytes not in self.faces_by_token:
            raise InvalidImageError("Failed to decode image")
        faces = [
            Face(box=BoundingBox(x=10.0 * i, y=5.0, width=40.0, height=48.0), embedding=embedding)
            for i, embedding in enumerate(self.faces_by_token[image_bytes])
        ]
        return DetectionResult(faces=faces)


class Library:
    """Writes token images into a media directory and scripts the detector."""

    def __init__(self, root: Path, detector: FakeRecognitionService) -> None:
        self.root = root
        self.detector = detector

    def add(self, filename: str, *embeddings: List[float], token: Optional[bytes] = None) -> str:
        token = token or filename.encode()
        path = self.root / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(token)
        self.detector.faces_by_token[token] = list(embeddings)
        return filename


@pytest.fixture
def detector() -> FakeRecognitionService:
    return FakeRecognitionService()


@pytest.fixture
def media_dir(tmp_path) -> Path:
    root = tmp_path / "media"
    root.mkdir()
    return root


@pytest.fixture
def library(media_dir, detector) -> Library:
    return Library(media_dir, detector)


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def file_service(media_dir) -> FileService:
    return FileService(media_dir, image_extensions=[".jpg", ".png"])


@pytest.fixture
def grouping_service(detector, blob_store, file_service) -> FaceGroupingService:
    return FaceGroupingService(
        recognition_service=detector,
        blob_store=blob_store,
        file_service=file_service,
        similarity_threshold=0.6,
    )
