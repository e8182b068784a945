"""API specific face models."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.domain.value_objects.recognition import BatchItemResult, GroupSummary
from app.services.batch_jobs import BatchJob, BatchStatus


class ProcessImageRequest(BaseModel):
    """Request model for the /process endpoint."""
    filename: str = Field(
        ...,
        description="Image path relative to the media base path",
        min_length=1, max_length=1024
    )


class BatchRequest(BaseModel):
    """Request model for the /batches endpoint."""
    filenames: List[str] = Field(
        ...,
        description="Image paths relative to the media base path, processed in order",
        min_length=1
    )


class FaceGroupsResponse(BaseModel):
    """Response model for the /groups endpoint."""
    groups: List[GroupSummary] = Field(..., description="All face groups in creation order")


class GroupImagesResponse(BaseModel):
    """Response model for the /groups/{group_id}/images endpoint."""
    group_id: str = Field(..., alias="groupId", description="Requested group identifier")
    images: List[str] = Field(..., description="Images in the group, empty for unknown groups")

    model_config = ConfigDict(populate_by_name=True)


class BatchJobResponse(BaseModel):
    """Response model describing a batch job."""
    job_id: str = Field(..., alias="jobId", description="Unique identifier of the batch job")
    status: BatchStatus = Field(..., description="Current job status")
    processed: int = Field(..., description="Number of images finished so far")
    total: int = Field(..., description="Number of images in the batch")
    current_filename: Optional[str] = Field(None, alias="currentFilename", description="Last image finished")
    results: List[BatchItemResult] = Field(..., description="Per-image outcomes once completed")
    error: Optional[str] = Field(None, description="Error that stopped the job, if any")
    created_at: datetime = Field(..., alias="createdAt")
    finished_at: Optional[datetime] = Field(None, alias="finishedAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_job(cls, job: BatchJob) -> "BatchJobResponse":
        """Convert the service layer job to the API response model."""
        return cls(
            job_id=job.job_id,
            status=job.status,
            processed=job.processed,
            total=job.total,
            current_filename=job.current_filename,
            results=list(job.results),
            error=job.error,
            created_at=job.created_at,
            finished_at=job.finished_at,
        )


class BatchJobsResponse(BaseModel):
    """Response model for the /batches listing."""
    jobs: List[BatchJobResponse] = Field(..., description="Running and recently finished jobs, oldest first")
