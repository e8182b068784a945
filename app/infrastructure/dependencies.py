"""FastAPI dependency providers."""
from typing import AsyncGenerator

from fastapi import Depends

from app.core.container import ServiceContainer, container
from app.core.exceptions import ServiceNotInitializedError
from app.services.batch_jobs import BatchJobManager
from app.services.face_grouping import FaceGroupingService


async def get_container() -> ServiceContainer:
    """Dependency provider for the global ServiceContainer instance."""
    if not container.initialized:
        try:
            await container.initialize()
        except Exception as e:
            raise ServiceNotInitializedError(f"Service container could not be initialized: {e}")
    return container


async def get_face_grouping_service(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[FaceGroupingService, None]:
    """Provide the face grouping service.

    Raises:
        ServiceNotInitializedError: If service is not initialized
    """
    if container.face_grouping_service is None:
        raise ServiceNotInitializedError("Face grouping service not initialized")
    yield container.face_grouping_service


async def get_batch_job_manager(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[BatchJobManager, None]:
    """Provide the batch job manager.

    Raises:
        ServiceNotInitializedError: If the manager is not initialized
    """
    if container.batch_job_manager is None:
        raise ServiceNotInitializedError("Batch job manager not initialized")
    yield container.batch_job_manager
