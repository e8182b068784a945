"""Domain entities package."""
from .face import BoundingBox, Face, FaceGroup

__all__ = ["BoundingBox", "Face", "FaceGroup"]
