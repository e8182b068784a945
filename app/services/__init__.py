"""Application services."""
from .recognition.insight_face import InsightFaceRecognitionService

__all__ = ["InsightFaceRecognitionService"]
