from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for the health endpoint."""
    status: str = Field(..., description="Overall service status", examples=["ok"])
    version: str = Field(..., description="Service version", examples=["1.0.0"])
    provider_configured: bool = Field(
        ...,
        description="Whether screenshot provider credentials are set"
    )
