"""Service container for dependency injection."""
from pathlib import Path
from typing import Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.domain.interfaces.recognition.face_recognition import FaceRecognitionService
from app.domain.interfaces.storage.blob_store import BlobStore
from app.infrastructure.storage import LocalJsonStore
from app.services.batch_jobs import BatchJobManager
from app.services.face_grouping import FaceGroupingService
from app.services.file_service import FileService
from app.services.recognition.insight_face import InsightFaceRecognitionService

logger = get_logger(__name__)


class ServiceContainer:
    """Container for application services.

    One container serves one media base path and its faces directory.

    Example:
        ```python
        container = ServiceContainer()
        await container.initialize()

        grouping = container.face_grouping_service
        ```
    """

    def __init__(self) -> None:
        """Initialize empty container."""
        self.blob_store: Optional[BlobStore] = None
        self.file_service: Optional[FileService] = None
        self.face_recognition_service: Optional[FaceRecognitionService] = None

        self.face_grouping_service: Optional[FaceGroupingService] = None
        self.batch_job_manager: Optional[BatchJobManager] = None

    @property
    def initialized(self) -> bool:
        return self.face_grouping_service is not None

    async def initialize(
        self,
        recognition_service: Optional[FaceRecognitionService] = None,
        blob_store: Optional[BlobStore] = None,
        media_base_path: Optional[Path] = None,
    ) -> None:
        """Initialize all services in the correct order and load persisted groups.

        Args:
            recognition_service: Detector to use instead of InsightFace
            blob_store: Storage to use instead of the faces directory
            media_base_path: Media root to use instead of settings.MEDIA_BASE_PATH
        """
        self.blob_store = blob_store or LocalJsonStore(settings.faces_path)
        self.file_service = FileService(
            media_base_path or Path(settings.MEDIA_BASE_PATH),
            image_extensions=settings.image_extensions,
        )
        self.face_recognition_service = recognition_service or InsightFaceRecognitionService()
        self.face_grouping_service = FaceGroupingService(
            recognition_service=self.face_recognition_service,
            blob_store=self.blob_store,
            file_service=self.file_service,
        )
        await self.face_grouping_service.load()
        self.batch_job_manager = BatchJobManager(self.face_grouping_service)

    async def cleanup(self) -> None:
        """Stop batch jobs, flush unsaved groups and drop services."""
        if self.batch_job_manager:
            await self.batch_job_manager.cleanup()
            self.batch_job_manager = None

        if self.face_grouping_service:
            try:
                await self.face_grouping_service.flush()
            finally:
                self.face_grouping_service = None

        self.face_recognition_service = None
        self.file_service = None
        self.blob_store = None


# Global container instance
container = ServiceContainer()
