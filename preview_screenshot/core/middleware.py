import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from preview_screenshot.core.logging import get_logger


logger = get_logger("middleware")

# Headers set by the CDN and proxies in front of the service, in order of preference
CLIENT_IP_HEADERS = [
    "cf-connecting-ip",
    "x-real-ip",
    "x-forwarded-for",
]


def get_real_client_ip(request: Request) -> Optional[str]:
    """Extract the real client IP from request headers.

    Args:
        request: The FastAPI request object

    Returns:
        The real client IP address or None if not found
    """
    for header_name in CLIENT_IP_HEADERS:
        header_value = request.headers.get(header_name)
        if header_value:
            # X-Forwarded-For can contain multiple IPs: "client, proxy1, proxy2"
            first_ip = header_value.split(",")[0].strip()
            if first_ip and first_ip != "unknown":
                return first_ip

    if request.client:
        return request.client.host

    return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging request and response details."""

    def __init__(self, app: ASGIApp, enabled: bool = True):
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Tag the request with an ID and log it with its outcome.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            The response
        """
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        request_log = logger.bind(
            request_id=request_id,
            client=get_real_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
        if self.enabled:
            request_log.info(f"Request received: {request.method} {request.url.path}")

        try:
            response = await call_next(request)
        except Exception:
            duration = time.time() - start_time
            request_log.exception(f"Request failed: {request.method} {request.url.path} ({duration:.3f}s)")
            raise

        duration = time.time() - start_time
        if self.enabled:
            log_level = "error" if response.status_code >= 500 else \
                       "warning" if response.status_code >= 400 else "info"
            getattr(request_log, log_level)(
                f"Response sent: {response.status_code} {request.method} {request.url.path} ({duration:.3f}s)"
            )

        response.headers["X-Request-ID"] = request_id
        return response
