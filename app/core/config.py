"""Configuration settings for the face groups service."""
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    These settings are loaded from environment variables with the following precedence:
    1. Environment variables
    2. .env file
    3. Default values

    Attributes:
        MEDIA_BASE_PATH: Root directory holding the media library
        FACES_DIR: Directory where face records and groups are persisted
        SIMILARITY_THRESHOLD: Cosine similarity a face must exceed to join a group (0-1)
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",  # No prefix for environment variables
        env_nested_delimiter="__"  # Use double underscore for nested settings
    )

    # Core Settings
    PROJECT_NAME: str = "Face Groups Service"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins(self) -> List[str]:
        """Get list of allowed origins."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Media Settings
    MEDIA_BASE_PATH: str = "./media"
    FACES_DIR: str = ""  # Empty means <MEDIA_BASE_PATH>/.faces
    IMAGE_EXTENSIONS: str = ".jpg,.jpeg,.png,.bmp,.webp"

    @property
    def faces_path(self) -> Path:
        """Directory holding face-groups.json and per-image records."""
        if self.FACES_DIR:
            return Path(self.FACES_DIR)
        return Path(self.MEDIA_BASE_PATH) / ".faces"

    @property
    def image_extensions(self) -> List[str]:
        """Get list of lowercase image extensions."""
        return [ext.strip().lower() for ext in self.IMAGE_EXTENSIONS.split(",") if ext.strip()]

    # Face Recognition Settings
    MODEL_NAME: str = "buffalo_l"
    MODEL_CACHE_DIR: str = ".model_cache"
    DETECTION_SIZE: int = 640
    MAX_IMAGE_DIMENSION: int = 800  # Longest side before detection
    DETECTION_TIMEOUT: Optional[float] = None  # Seconds, None for no bound

    # Face grouping settings
    SIMILARITY_THRESHOLD: float = 0.6
    BATCH_JOBS_RETAINED: int = 50  # Finished batch jobs kept for polling

    # Optional settings with defaults
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000

settings = Settings()
