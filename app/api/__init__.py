"""API v1 router initialization."""
from fastapi import APIRouter

from .face_groups import router as face_groups_router

# Create v1 router
router = APIRouter()

# Include face grouping endpoints
router.include_router(
    face_groups_router,
    prefix="/faces",
    tags=["faces"]
)
