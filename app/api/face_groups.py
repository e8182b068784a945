"""Face grouping API endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status

from app.api.models.face import (
    BatchJobResponse,
    BatchJobsResponse,
    BatchRequest,
    FaceGroupsResponse,
    GroupImagesResponse,
    ProcessImageRequest,
)
from app.core.exceptions import (
    DetectionTimeoutError,
    EmbeddingMismatchError,
    ImageNotFoundError,
    InvalidImageError,
    ModelLoadError,
    PathAccessError,
    StorageError,
)
from app.core.logging import get_logger
from app.domain.value_objects.recognition import ImageFaceRecord
from app.infrastructure.dependencies import (
    get_batch_job_manager,
    get_face_grouping_service,
)
from app.services.batch_jobs import BatchJobManager
from app.services.face_grouping import FaceGroupingService

logger = get_logger(__name__)
router = APIRouter(
    responses={
        400: {"description": "Invalid request"},
        500: {"description": "Internal server error"}
    }
)


@router.post(
    "/process",
    response_model=ImageFaceRecord,
    summary="Group the faces in an image",
    description="Detects faces in an image and assigns each one to an existing or new face group. "
                "Images processed before are returned from the stored record.",
    responses={
        200: {
            "description": "Image processed",
            "content": {
                "application/json": {
                    "example": {
                        "filename": "holiday/beach.jpg",
                        "faces": [
                            {
                                "box": {"x": 120.5, "y": 80.0, "width": 96.0, "height": 110.2},
                                "embedding": [0.013, -0.092, 0.051],
                            }
                        ],
                        "groups": [
                            {"groupId": "face_0f8e2a5c9b1d4e7f8a6b3c2d1e0f9a8b", "similarity": 0.83}
                        ],
                    }
                }
            },
        },
        403: {"description": "Path outside the media library"},
        404: {"description": "Image not found"},
        503: {"description": "Face detection model unavailable"},
        409: {"description": "Face embeddings do not match the stored groups"},
        504: {"description": "Face detection timed out"},
    },
)
async def process_image(
    request: ProcessImageRequest,
    service: FaceGroupingService = Depends(get_face_grouping_service)
) -> ImageFaceRecord:
    """Process one image.

    Raises:
        HTTPException: If the image cannot be processed
    """
    try:
        return await service.process_image(request.filename)

    except PathAccessError as e:
        logger.warning("Rejected image outside media base", filename=request.filename)
        raise HTTPException(status_code=403, detail=str(e))
    except ImageNotFoundError as e:
        logger.warning("Image not found", filename=request.filename)
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidImageError as e:
        logger.error("Invalid image format", filename=request.filename, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    except ModelLoadError as e:
        logger.error("Face detection model unavailable", error=str(e))
        raise HTTPException(status_code=503, detail=str(e))
    except DetectionTimeoutError as e:
        logger.error("Face detection timed out", filename=request.filename)
        raise HTTPException(status_code=504, detail=str(e))
    except EmbeddingMismatchError as e:
        logger.error("Face embeddings do not match stored groups", filename=request.filename, error=str(e))
        raise HTTPException(status_code=409, detail=str(e))
    except StorageError as e:
        logger.error("Failed to persist face data", filename=request.filename, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to store face data")
    except Exception as e:
        logger.error("Unexpected error during face grouping",
                     filename=request.filename, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while processing the request"
        )


@router.get(
    "/groups",
    response_model=FaceGroupsResponse,
    summary="List face groups",
)
async def list_groups(
    service: FaceGroupingService = Depends(get_face_grouping_service)
) -> FaceGroupsResponse:
    """Return every face group with its image count and images."""
    return FaceGroupsResponse(groups=service.get_face_groups())


@router.get(
    "/groups/{group_id}/images",
    response_model=GroupImagesResponse,
    summary="List the images of a face group",
    description="Unknown group ids return an empty list.",
)
async def group_images(
    group_id: str,
    service: FaceGroupingService = Depends(get_face_grouping_service)
) -> GroupImagesResponse:
    """Return the images of one face group."""
    return GroupImagesResponse(group_id=group_id, images=service.get_group_images(group_id))


@router.post(
    "/batches",
    response_model=BatchJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Group the faces in many images",
    description="Starts a background job that processes the images one at a time. "
                "Poll the returned job for progress.",
)
async def start_batch(
    request: BatchRequest,
    manager: BatchJobManager = Depends(get_batch_job_manager)
) -> BatchJobResponse:
    """Start a batch job."""
    job = manager.start(request.filenames)
    return BatchJobResponse.from_job(job)


@router.get(
    "/batches/{job_id}",
    response_model=BatchJobResponse,
    summary="Get batch job progress",
    responses={404: {"description": "Batch job not found"}},
)
async def get_batch(
    job_id: str,
    manager: BatchJobManager = Depends(get_batch_job_manager)
) -> BatchJobResponse:
    """Return the progress of a batch job.

    Raises:
        HTTPException: If the job does not exist
    """
    job = manager.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Batch job not found: {job_id}")
    return BatchJobResponse.from_job(job)


@router.get(
    "/batches",
    response_model=BatchJobsResponse,
    summary="List batch jobs",
    description="Running jobs and the most recently finished ones.",
)
async def list_batches(
    manager: BatchJobManager = Depends(get_batch_job_manager)
) -> BatchJobsResponse:
    """Return every retained batch job."""
    return BatchJobsResponse(jobs=[BatchJobResponse.from_job(job) for job in manager.list_jobs()])
