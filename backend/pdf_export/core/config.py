"""
Application configuration
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # API Configuration
    API_PREFIX: str = "/api"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # Export storage
    EXPORT_OUTPUT_DIR: str = "exports"
    KEEP_FAILED_ARTIFACTS: bool = False

    # Job Processing
    MAX_CONCURRENT_EXPORTS: int = 1  # One render pipeline at a time for a 1GB host
    MAX_QUEUE_DEPTH: int = 3
    PAGE_RENDER_TIMEOUT_SECONDS: float = 120.0
    TEMP_PAGE_CLEANUP_DELAY_SECONDS: float = 30.0
    JOB_RETENTION_SECONDS: int = 3600  # 1 hour
    JANITOR_INTERVAL_SECONDS: int = 3600

    # Memory limits (MB), tuned against a 1GB deployment
    MEMORY_SOFT_LIMIT_MB: int = 600
    MEMORY_WARNING_LIMIT_MB: int = 700
    MEMORY_HARD_LIMIT_MB: int = 800
    MEMORY_SAMPLE_INTERVAL_SECONDS: int = 60

    # iLovePDF compression
    ILOVEPDF_PUBLIC_KEY: Optional[str] = None
    ILOVEPDF_SECRET_KEY: Optional[str] = None
    ILOVEPDF_API_URL: str = "https://api.ilovepdf.com/v1"
    ILOVEPDF_TIMEOUT_SECONDS: float = 120.0
    DEFAULT_COMPRESSION_LEVEL: str = "recommended"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
