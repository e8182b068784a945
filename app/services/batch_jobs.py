"""Background batch jobs for grouping many images."""
import asyncio
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field

from app.core.config import settings
from app.core.logging import get_logger
from app.domain.value_objects.recognition import BatchItemResult
from app.services.face_grouping import FaceGroupingService

logger = get_logger(__name__)


class BatchStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class BatchJob(BaseModel):
    """Progress of one batch run."""
    job_id: str = Field(..., description="Unique identifier of the batch job")
    status: BatchStatus = Field(BatchStatus.PENDING, description="Current job status")
    total: int = Field(..., description="Number of images in the batch")
    processed: int = Field(0, description="Number of images finished so far")
    current_filename: Optional[str] = Field(None, description="Last image finished")
    results: List[BatchItemResult] = Field(default_factory=list, description="Per-image outcomes once completed")
    error: Optional[str] = Field(None, description="Error that stopped the job, if any")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = Field(None, description="Completion time")


class BatchJobManager:
    """Runs FaceGroupingService.process_images as asyncio tasks.

    Jobs run one image at a time and share the grouping service lock with
    single-image requests, so they never mutate groups concurrently.
    """

    def __init__(self, grouping_service: FaceGroupingService, max_finished_jobs: Optional[int] = None) -> None:
        self._grouping_service = grouping_service
        self.max_finished_jobs = settings.BATCH_JOBS_RETAINED if max_finished_jobs is None else max_finished_jobs
        self._jobs: Dict[str, BatchJob] = {}
        self._tasks: Set[asyncio.Task] = set()

    def get(self, job_id: str) -> Optional[BatchJob]:
        return self._jobs.get(job_id)

    def list_jobs(self) -> List[BatchJob]:
        """Retained jobs, oldest first."""
        return list(self._jobs.values())

    def _evict_finished(self) -> None:
        """Drop the oldest finished jobs beyond max_finished_jobs."""
        finished = [job for job in self._jobs.values() if job.finished_at is not None]
        excess = len(finished) - self.max_finished_jobs
        if excess <= 0:
            return
        finished.sort(key=lambda job: job.finished_at)
        for job in finished[:excess]:
            del self._jobs[job.job_id]
        logger.debug("Evicted finished batch jobs", count=excess)

    def start(self, filenames: List[str]) -> BatchJob:
        """Create a job and schedule it on the running event loop."""
        job = BatchJob(job_id=str(uuid.uuid4()), total=len(filenames))
        self._jobs[job.job_id] = job
        task = asyncio.create_task(self._run(job, list(filenames)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Started batch job", job_id=job.job_id, total=job.total)
        return job

    async def _run(self, job: BatchJob, filenames: List[str]) -> None:
        def on_progress(index: int, total: int, filename: str) -> None:
            job.processed = index
            job.current_filename = filename
            logger.debug("Batch progress", job_id=job.job_id, processed=index, total=total, filename=filename)

        job.status = BatchStatus.RUNNING
        try:
            job.results = await self._grouping_service.process_images(filenames, on_progress)
            job.status = BatchStatus.COMPLETED
        except asyncio.CancelledError:
            job.status = BatchStatus.FAILED
            job.error = "cancelled"
            raise
        except Exception as e:
            logger.error("Batch job failed", job_id=job.job_id, error=str(e), exc_info=True)
            job.status = BatchStatus.FAILED
            job.error = str(e)
        finally:
            job.finished_at = datetime.now(timezone.utc)
            self._evict_finished()
        failed = sum(1 for r in job.results if not r.ok)
        logger.info("Finished batch job", job_id=job.job_id, total=job.total, failed=failed, status=job.status.value)

    async def wait(self) -> None:
        """Wait for every running job to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def cleanup(self) -> None:
        """Cancel unfinished jobs."""
        for task in list(self._tasks):
            task.cancel()
        await self.wait()
