"""Tests for background batch jobs."""
import asyncio

from app.services.batch_jobs import BatchJobManager, BatchStatus
from conftest import vec


class TestBatchJobManager:
    """BatchJobManager runs batches in the background and tracks progress."""

    async def test_job_completes_with_per_image_results(self, grouping_service, library):
        library.add("a.jpg", vec(1))
        library.add("b.jpg", vec(1, 0.1))
        manager = BatchJobManager(grouping_service)

        job = manager.start(["a.jpg", "missing.jpg", "b.jpg"])
        assert job.total == 3
        await manager.wait()

        assert manager.get(job.job_id) is job
        assert job.status == BatchStatus.COMPLETED
        assert job.processed == 3
        assert job.current_filename == "b.jpg"
        assert [r.ok for r in job.results] == [True, False, True]
        assert job.finished_at is not None
        assert len(grouping_service.get_face_groups()) == 1

    async def test_progress_visible_while_running(self, grouping_service, library, detector):
        library.add("a.jpg", vec(1))
        library.add("b.jpg", vec(0, 1))
        release = asyncio.Event()
        original = detector.detect_faces

        async def gated(image_bytes):
            if image_bytes == b"b.jpg":
                await release.wait()
            return await original(image_bytes)

        detector.detect_faces = gated
        manager = BatchJobManager(grouping_service)
        job = manager.start(["a.jpg", "b.jpg"])

        for _ in range(100):
            if job.processed == 1:
                break
            await asyncio.sleep(0.01)
        assert job.status == BatchStatus.RUNNING
        assert job.processed == 1
        assert job.current_filename == "a.jpg"

        release.set()
        await manager.wait()
        assert job.status == BatchStatus.COMPLETED

    async def test_unknown_job(self, grouping_service):
        manager = BatchJobManager(grouping_service)
        assert manager.get("nope") is None
        assert manager.list_jobs() == []

    async def test_cleanup_cancels_running_jobs(self, grouping_service, library, detector):
        library.add("a.jpg", vec(1))

        async def never(image_bytes):
            await asyncio.Event().wait()

        detector.detect_faces = never
        manager = BatchJobManager(grouping_service)
        job = manager.start(["a.jpg"])
        await asyncio.sleep(0.01)

        await manager.cleanup()

        assert job.finished_at is not None
        assert job.status != BatchStatus.COMPLETED

    async def test_oldest_finished_jobs_are_evicted(self, grouping_service, library):
        library.add("a.jpg", vec(1))
        manager = BatchJobManager(grouping_service, max_finished_jobs=2)

        jobs = []
        for _ in range(3):
            jobs.append(manager.start(["a.jpg"]))
            await manager.wait()

        assert manager.get(jobs[0].job_id) is None
        assert manager.list_jobs() == jobs[1:]

    async def test_running_jobs_are_never_evicted(self, grouping_service, library, detector):
        library.add("a.jpg", vec(1))
        release = asyncio.Event()
        original = detector.detect_faces

        async def gated(image_bytes):
            await release.wait()
            return await original(image_bytes)

        detector.detect_faces = gated
        manager = BatchJobManager(grouping_service, max_finished_jobs=0)
        slow = manager.start(["a.jpg"])
        empty = manager.start([])
        for _ in range(100):
            if manager.get(empty.job_id) is None:
                break
            await asyncio.sleep(0.01)

        assert manager.get(empty.job_id) is None
        assert manager.list_jobs() == [slow]

        release.set()
        await manager.wait()
        assert slow.status == BatchStatus.COMPLETED
        assert manager.list_jobs() == []
