from fastapi import APIRouter, Request, status

from preview_screenshot.core.config import APP_VERSION
from preview_screenshot.schemas.health import HealthResponse

# Create a router for health check endpoints
router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="""
    Check the health status of the service.

    ## Response
    - status: `ok`, or `degraded` when provider credentials are missing
    - version: service version
    - provider_configured: whether ScreenshotOne credentials are set
    """,
)
async def health_check(request: Request) -> HealthResponse:
    """Report service status and whether the provider can be reached with credentials."""
    provider_configured = request.app.state.settings.has_provider_credentials()
    return HealthResponse(
        status="ok" if provider_configured else "degraded",
        version=APP_VERSION,
        provider_configured=provider_configured,
    )
