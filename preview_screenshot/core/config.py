import os

from pydantic import BaseModel, Field, ConfigDict
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

APP_VERSION = "1.0.0"


class Settings(BaseModel):
    """Application settings."""
    # ScreenshotOne Configuration
    screenshotone_access_key: str = Field(
        default_factory=lambda: os.getenv("SCREENSHOTONE_ACCESS_KEY", "")
    )
    screenshotone_secret_key: str = Field(
        default_factory=lambda: os.getenv("SCREENSHOTONE_SECRET_KEY", "")
    )
    screenshotone_base_url: str = Field(
        default_factory=lambda: os.getenv("SCREENSHOTONE_BASE_URL", "https://api.screenshotone.com")
    )
    provider_timeout: float = Field(
        default_factory=lambda: float(os.getenv("PROVIDER_TIMEOUT", "60"))
    )

    # Target Configuration
    allowed_domain: str = Field(
        default_factory=lambda: os.getenv("ALLOWED_DOMAIN", "stagetimer.io")
    )
    public_base_url: str = Field(
        default_factory=lambda: os.getenv("PUBLIC_BASE_URL", "https://preview-screenshot.stagetimer.io")
    )

    # Cache Configuration (provider cache and Cache-Control max-age)
    cache_ttl_seconds: int = Field(
        default_factory=lambda: int(os.getenv("CACHE_TTL_SECONDS", "2592000"))  # 30 days
    )

    # Screenshot defaults
    default_viewport_width: int = Field(
        default_factory=lambda: int(os.getenv("DEFAULT_VIEWPORT_WIDTH", "1200"))
    )
    default_viewport_height: int = Field(
        default_factory=lambda: int(os.getenv("DEFAULT_VIEWPORT_HEIGHT", "627"))
    )
    default_device_scale_factor: float = Field(
        default_factory=lambda: float(os.getenv("DEFAULT_DEVICE_SCALE_FACTOR", "1"))
    )
    default_scroll_into_view: str = Field(
        default_factory=lambda: os.getenv("DEFAULT_SCROLL_INTO_VIEW", "main")
    )

    # Server settings
    workers: int = Field(
        default_factory=lambda: int(os.getenv("WORKERS", "2"))
    )

    # Logging Configuration
    log_level: str = Field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )
    log_requests: bool = Field(
        default_factory=lambda: os.getenv("LOG_REQUESTS", "True").lower() in ("true", "1", "t")
    )

    model_config = ConfigDict()

    def has_provider_credentials(self) -> bool:
        """Whether both ScreenshotOne keys are configured."""
        return bool(self.screenshotone_access_key and self.screenshotone_secret_key)


# Create global settings instance
settings = Settings()
