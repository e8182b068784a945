"""Face grouping service: incremental clustering of faces across images.

Each group is anchored by the embedding of the first face assigned to it.
A newly detected face joins the group whose reference embedding is most
similar to it, provided the cosine similarity exceeds the threshold;
otherwise it starts a new group.

State lives in memory and is persisted through a BlobStore: the full group set
under ``face-groups.json`` and one immutable record per processed image.
"""
import asyncio
import inspect
import itertools
import uuid
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from pydantic import ValidationError

from app.core.config import settings
from app.core.exceptions import DetectionTimeoutError, EmbeddingMismatchError, StorageError
from app.core.logging import get_logger
from app.domain.entities.face import Face, FaceGroup
from app.domain.interfaces.recognition.face_recognition import FaceRecognitionService
from app.domain.interfaces.storage.blob_store import BlobStore
from app.domain.value_objects.recognition import (
    BatchItemResult,
    FaceMatch,
    GroupAssignment,
    GroupSummary,
    ImageFaceRecord,
)
from app.services.file_service import FileService

logger = get_logger(__name__)

GROUPS_KEY = "face-groups.json"

ProgressCallback = Callable[[int, int, str], Union[None, Awaitable[None]]]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors.

    Returns 0.0 when either vector has zero norm or a non-finite component.

    Raises:
        ValueError: If the vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Embedding length mismatch: {va.shape} vs {vb.shape}")
    if not (np.isfinite(va).all() and np.isfinite(vb).all()):
        return 0.0
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    similarity = float(np.dot(va, vb)) / (norm_a * norm_b)
    return float(np.clip(similarity, -1.0, 1.0))


def record_key(filename: str) -> str:
    """Storage key of the face record for an image."""
    return filename.replace("/", "_").replace("\\", "_") + ".json"


class FaceGroupingService:
    """Groups images by the faces they contain.

    One instance owns the group set for one faces directory. Calls to
    ``process_image`` are serialized by a lock; reads work on the in-memory
    state and never interleave with a mutation.

    Example:
        ```python
        service = FaceGroupingService(
            recognition_service=InsightFaceRecognitionService(),
            blob_store=LocalJsonStore(settings.faces_path),
            file_service=FileService(settings.MEDIA_BASE_PATH),
        )
        await service.load()
        record = await service.process_image("holiday/beach.jpg")
        ```
    """

    def __init__(
        self,
        recognition_service: FaceRecognitionService,
        blob_store: BlobStore,
        file_service: FileService,
        similarity_threshold: Optional[float] = None,
        detection_timeout: Optional[float] = None,
    ) -> None:
        """Initialize the face grouping service.

        Args:
            recognition_service: Detector returning faces with embeddings
            blob_store: Storage for groups and per-image records
            file_service: Reader for image bytes under the media base path
            similarity_threshold: Exclusive lower bound for joining a group
            detection_timeout: Seconds allowed per detection, None for no bound
        """
        self._recognition_service = recognition_service
        self._blob_store = blob_store
        self._file_service = file_service
        self.similarity_threshold = (
            settings.SIMILARITY_THRESHOLD if similarity_threshold is None else similarity_threshold
        )
        self.detection_timeout = (
            settings.DETECTION_TIMEOUT if detection_timeout is None else detection_timeout
        )
        # Insertion order is group creation order and decides ties
        self._groups: Dict[str, FaceGroup] = {}
        self._lock = asyncio.Lock()
        self._dirty = False

    async def load(self) -> None:
        """Replace in-memory groups with the persisted group set.

        A missing or malformed group file leaves the service with no groups.
        """
        if not await self._blob_store.exists(GROUPS_KEY):
            logger.info("No persisted face groups found, starting empty")
            self._groups = {}
            return
        try:
            data = await self._blob_store.read(GROUPS_KEY)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            groups = {
                group_id: FaceGroup.model_validate({**group_data, "id": group_id})
                for group_id, group_data in data.items()
            }
            lengths = {len(group.reference_embedding) for group in groups.values()}
            if len(lengths) > 1:
                raise ValueError(f"mixed embedding lengths {sorted(lengths)}")
        except (StorageError, ValidationError, ValueError, TypeError) as e:
            logger.error("Ignoring malformed face groups file", key=GROUPS_KEY, error=str(e))
            self._groups = {}
            return
        self._groups = groups
        self._dirty = False
        logger.info("Loaded face groups", groups_count=len(groups), embedding_length=self.embedding_length)

    @property
    def embedding_length(self) -> Optional[int]:
        """Length shared by all reference embeddings, None while there are no groups."""
        for group in self._groups.values():
            return len(group.reference_embedding)
        return None

    def _check_embedding(self, embedding: Sequence[float], expected: Optional[int]) -> None:
        if expected is not None and len(embedding) != expected:
            raise EmbeddingMismatchError(
                f"Face embedding has {len(embedding)} values but stored groups use {expected}; "
                "the groups were built with a different recognition model",
                details={"embedding_length": len(embedding), "expected_length": expected}
            )

    async def save(self) -> None:
        """Write the whole group set.

        Raises:
            StorageError: If the write fails; in-memory groups are kept
        """
        data = {
            group_id: group.model_dump(by_alias=True, exclude={"id"})
            for group_id, group in self._groups.items()
        }
        await self._blob_store.write(GROUPS_KEY, data)
        self._dirty = False
        logger.debug("Saved face groups", groups_count=len(data))

    async def flush(self) -> None:
        """Save the group set if a previous save did not complete."""
        if self._dirty:
            await self.save()

    def match_face(self, embedding: Sequence[float], threshold: Optional[float] = None) -> Optional[FaceMatch]:
        """Find the group whose reference embedding best matches a face.

        Args:
            embedding: Face embedding to match
            threshold: Exclusive lower bound on similarity, defaults to the service threshold

        Returns:
            The best match, or None if no group exceeds the threshold

        Raises:
            EmbeddingMismatchError: If the embedding length differs from the stored groups
        """
        if threshold is None:
            threshold = self.similarity_threshold
        self._check_embedding(embedding, self.embedding_length)
        return self._best_match(embedding, self._groups.values(), threshold)

    @staticmethod
    def _best_match(
        embedding: Sequence[float], candidates: Iterable[FaceGroup], threshold: float
    ) -> Optional[FaceMatch]:
        # Candidates come in creation order; only a strictly better score replaces the best
        best_match: Optional[str] = None
        best_similarity = threshold
        for group in candidates:
            similarity = cosine_similarity(embedding, group.reference_embedding)
            if similarity > best_similarity:
                best_similarity = similarity
                best_match = group.id
        if best_match is None:
            return None
        return FaceMatch(group_id=best_match, similarity=best_similarity)

    def get_face_groups(self) -> List[GroupSummary]:
        """Snapshot of all groups in creation order."""
        return [
            GroupSummary(id=group_id, image_count=len(group.images), images=list(group.images))
            for group_id, group in self._groups.items()
        ]

    def get_group_images(self, group_id: str) -> List[str]:
        """Images of a group, or an empty list for unknown ids."""
        group = self._groups.get(group_id)
        return list(group.images) if group else []

    async def get_record(self, filename: str) -> Optional[ImageFaceRecord]:
        """Stored face record for an image, or None if it was never processed."""
        key = record_key(filename)
        if not await self._blob_store.exists(key):
            return None
        try:
            return ImageFaceRecord.model_validate(await self._blob_store.read(key))
        except ValidationError as e:
            raise StorageError(f"Malformed face record {key}: {e}", details={"filename": filename})

    async def process_image(self, filename: str) -> ImageFaceRecord:
        """Detect faces in an image and assign each to a group.

        Images that already have a record are returned as stored, without
        detection and without touching the groups.

        Raises:
            PathAccessError: If the filename escapes the media base path
            ImageNotFoundError: If the image does not exist
            InvalidImageError: If the image cannot be decoded
            ModelLoadError: If the detector is unavailable
            DetectionTimeoutError: If detection exceeds the configured timeout
            EmbeddingMismatchError: If a face cannot be compared with the stored groups
            StorageError: If persisting the record or the groups fails
        """
        async with self._lock:
            cached = await self.get_record(filename)
            if cached is not None:
                logger.debug("Image already processed, returning stored record", filename=filename)
                return cached

            image_bytes = await self._file_service.get_file_bytes(filename)
            detection = await self._detect(filename, image_bytes)

            if not detection.faces:
                record = ImageFaceRecord(filename=filename, faces=[], groups=[])
                await self._write_record(record)
                logger.info("No faces detected", filename=filename)
                return record

            assignments, new_groups = self._plan_assignments(filename, detection.faces)
            record = ImageFaceRecord(filename=filename, faces=detection.faces, groups=assignments)

            joined = self._apply_assignments(filename, assignments, new_groups)
            try:
                await self._write_record(record)
            except Exception:
                self._revert_assignments(filename, joined, new_groups)
                raise
            if joined or new_groups:
                self._dirty = True
                await self.save()

            logger.info(
                "Processed image",
                filename=filename,
                faces_count=len(record.faces),
                groups=[a.group_id for a in assignments]
            )
            return record

    async def process_images(
        self,
        filenames: Sequence[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[BatchItemResult]:
        """Process images one after another.

        A failing image is recorded as an error entry and the batch continues.
        ``on_progress(index, total, filename)`` is called after every image
        with a 1-based index; it may be a coroutine function.
        """
        results: List[BatchItemResult] = []
        total = len(filenames)
        for index, filename in enumerate(filenames, start=1):
            try:
                record = await self.process_image(filename)
                results.append(BatchItemResult(filename=filename, record=record))
            except Exception as e:
                logger.error(
                    "Failed to process image in batch",
                    filename=filename,
                    error=str(e),
                    exc_info=True
                )
                results.append(BatchItemResult(filename=filename, error=str(e) or type(e).__name__))
            if on_progress is not None:
                outcome = on_progress(index, total, filename)
                if inspect.isawaitable(outcome):
                    await outcome
        return results

    def _plan_assignments(
        self, filename: str, faces: Sequence[Face]
    ) -> Tuple[List[GroupAssignment], List[FaceGroup]]:
        """Match every face without touching the groups.

        Groups created for earlier faces of the image are candidates for
        later ones. Nothing is mutated, so a failure leaves no trace.
        """
        expected = self.embedding_length
        new_groups: List[FaceGroup] = []
        assignments: List[GroupAssignment] = []
        for face in faces:
            self._check_embedding(face.embedding, expected)
            expected = len(face.embedding)
            candidates = itertools.chain(self._groups.values(), new_groups)
            match = self._best_match(face.embedding, candidates, self.similarity_threshold)
            if match is not None:
                assignments.append(GroupAssignment(group_id=match.group_id, similarity=match.similarity))
                continue
            group = FaceGroup(
                id=f"face_{uuid.uuid4().hex}",
                reference_embedding=list(face.embedding),
                images=[filename],
            )
            new_groups.append(group)
            assignments.append(GroupAssignment(group_id=group.id, similarity=1.0))
        return assignments, new_groups

    def _apply_assignments(
        self, filename: str, assignments: Sequence[GroupAssignment], new_groups: Sequence[FaceGroup]
    ) -> List[str]:
        """Add new groups and image memberships; returns the existing groups that gained the image."""
        for group in new_groups:
            self._groups[group.id] = group
            logger.info("Created face group", group_id=group.id, filename=filename)
        created = {group.id for group in new_groups}
        joined = []
        for assignment in assignments:
            if assignment.group_id in created:
                continue
            if self._groups[assignment.group_id].add_image(filename):
                joined.append(assignment.group_id)
        return joined

    def _revert_assignments(self, filename: str, joined: Sequence[str], new_groups: Sequence[FaceGroup]) -> None:
        for group in new_groups:
            self._groups.pop(group.id, None)
        for group_id in joined:
            self._groups[group_id].images.remove(filename)

    async def _detect(self, filename: str, image_bytes: bytes):
        detection = self._recognition_service.detect_faces(image_bytes)
        if not self.detection_timeout:
            return await detection
        try:
            return await asyncio.wait_for(detection, timeout=self.detection_timeout)
        except asyncio.TimeoutError:
            raise DetectionTimeoutError(
                f"Face detection timed out after {self.detection_timeout}s: {filename}",
                details={"filename": filename}
            )

    async def _write_record(self, record: ImageFaceRecord) -> None:
        await self._blob_store.write(record_key(record.filename), record.model_dump(by_alias=True))
