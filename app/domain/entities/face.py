"""Core face domain entities."""
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BoundingBox(BaseModel):
    """Face bounding box in pixels of the image given to the detector."""
    x: float = Field(..., description="Left coordinate of the bounding box")
    y: float = Field(..., description="Top coordinate of the bounding box")
    width: float = Field(..., description="Width of the bounding box")
    height: float = Field(..., description="Height of the bounding box")


class Face(BaseModel):
    """Detected face with its identity embedding."""
    box: BoundingBox = Field(..., description="Bounding box coordinates")
    embedding: List[float] = Field(..., description="Face embedding vector")

    @field_validator('embedding', mode='before')
    @classmethod
    def validate_embedding(cls, v):
        """Accept numpy arrays from the detector and store plain floats."""
        if hasattr(v, "tolist"):
            v = v.tolist()
        return [float(x) for x in v]


class FaceGroup(BaseModel):
    """A group of images believed to show the same person.

    The reference embedding is the embedding of the first face assigned to the
    group and never changes afterwards.
    """
    id: str = Field(..., description="Unique group identifier")
    reference_embedding: List[float] = Field(
        ..., alias="referenceEmbedding", description="Embedding of the first face in the group"
    )
    images: List[str] = Field(..., min_length=1, description="Filenames containing this face")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('images')
    @classmethod
    def dedupe_images(cls, v: List[str]) -> List[str]:
        """Drop repeated filenames while keeping first-seen order."""
        return list(dict.fromkeys(v))

    def add_image(self, filename: str) -> bool:
        """Add a filename to the group.

        Returns:
            True if the filename was new to the group
        """
        if filename in self.images:
            return False
        self.images.append(filename)
        return True
