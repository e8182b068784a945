"""Face recognition value objects."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.domain.entities.face import Face


class DetectionResult(BaseModel):
    """Result of face detection operation."""
    faces: List[Face] = Field(..., description="List of detected faces")


class FaceMatch(BaseModel):
    """Best group match for a face embedding."""
    group_id: str = Field(..., description="Matched group identifier")
    similarity: float = Field(..., description="Cosine similarity with the group reference")


class GroupAssignment(BaseModel):
    """Group a detected face was assigned to."""
    group_id: str = Field(..., alias="groupId", description="Group identifier")
    similarity: float = Field(..., description="Similarity with the group reference, 1.0 for new groups")

    model_config = ConfigDict(populate_by_name=True)


class ImageFaceRecord(BaseModel):
    """Faces found in one image and the groups they were assigned to.

    ``groups[i]`` is the assignment of ``faces[i]``.
    """
    filename: str = Field(..., description="Image path relative to the media base path")
    faces: List[Face] = Field(default_factory=list, description="Detected faces in detection order")
    groups: List[GroupAssignment] = Field(default_factory=list, description="One assignment per face")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode='after')
    def check_groups_match_faces(self) -> "ImageFaceRecord":
        if len(self.groups) != len(self.faces):
            raise ValueError(
                f"Record for {self.filename} has {len(self.faces)} faces but {len(self.groups)} groups"
            )
        return self


class GroupSummary(BaseModel):
    """Snapshot of a face group for listing."""
    id: str = Field(..., description="Group identifier")
    image_count: int = Field(..., alias="imageCount", description="Number of images in the group")
    images: List[str] = Field(..., description="Filenames in the group")

    model_config = ConfigDict(populate_by_name=True)


class BatchItemResult(BaseModel):
    """Outcome of one image in a batch run."""
    filename: str = Field(..., description="Image path relative to the media base path")
    record: Optional[ImageFaceRecord] = Field(None, description="Face record when processing succeeded")
    error: Optional[str] = Field(None, description="Error message when processing failed")

    @property
    def ok(self) -> bool:
        return self.error is None
