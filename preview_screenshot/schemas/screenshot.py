from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ScreenshotOverrides(BaseModel):
    """Per-request rendering overrides, passed as the ``screenshotone`` query parameter."""
    viewport_width: Optional[int] = Field(
        default=None,
        description="Viewport width in pixels",
        ge=1,
        examples=[960]
    )
    viewport_height: Optional[int] = Field(
        default=None,
        description="Viewport height in pixels",
        ge=1,
        examples=[550]
    )
    device_scale_factor: Optional[float] = Field(
        default=None,
        description="Device pixel ratio",
        gt=0,
        examples=[2]
    )
    scroll_into_view: Optional[str] = Field(
        default=None,
        description="CSS selector to scroll into view before capture",
        examples=["main"]
    )
    cache_key: Optional[str] = Field(
        default=None,
        description="Provider cache key, defaults to the target URL",
        examples=["pricing-v2"]
    )

    # Unknown keys are accepted and dropped
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "viewport_width": 960,
                "viewport_height": 550,
                "device_scale_factor": 2
            }
        }
    )


class ScreenshotOptions(BaseModel):
    """Options sent to the screenshot provider for one capture."""
    format: str = "jpg"
    block_ads: bool = True
    block_cookie_banners: bool = True
    block_banners_by_heuristics: bool = True
    block_trackers: bool = True
    device_scale_factor: float = 1
    viewport_width: int = 1200
    viewport_height: int = 627
    scroll_into_view: Optional[str] = "main"
    cache: bool = True
    cache_ttl: int = 2592000
    cache_key: Optional[str] = None

    def with_overrides(self, overrides: ScreenshotOverrides) -> "ScreenshotOptions":
        """Return a copy with every override that was set applied."""
        return self.model_copy(update=overrides.model_dump(exclude_none=True))
