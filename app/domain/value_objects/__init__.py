"""Value objects package."""
from .recognition import (
    BatchItemResult,
    DetectionResult,
    FaceMatch,
    GroupAssignment,
    GroupSummary,
    ImageFaceRecord,
)

__all__ = [
    "BatchItemResult",
    "DetectionResult",
    "FaceMatch",
    "GroupAssignment",
    "GroupSummary",
    "ImageFaceRecord",
]
