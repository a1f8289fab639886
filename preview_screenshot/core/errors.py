import traceback
from typing import Dict, Any, Optional


# Define common HTTP status codes to avoid dependency on FastAPI
HTTP_400_BAD_REQUEST = 400
HTTP_403_FORBIDDEN = 403
HTTP_500_INTERNAL_SERVER_ERROR = 500
HTTP_502_BAD_GATEWAY = 502


class PreviewScreenshotError(Exception):
    """Base exception class for the preview screenshot service.

    Every error carries the HTTP status and the plain-text message the
    caller receives, so the route can reject a request by raising.
    """
    def __init__(self,
                 message: str,
                 error_code: str = "internal_error",
                 http_status: int = HTTP_500_INTERNAL_SERVER_ERROR,
                 context: Optional[Dict[str, Any]] = None,
                 original_exception: Optional[Exception] = None):
        self.message = message
        self.error_code = error_code
        self.http_status = http_status
        self.context = context or {}
        self.original_exception = original_exception
        self.traceback = traceback.format_exc() if original_exception else None

        # Add original exception details to context if available
        if original_exception:
            self.context.update({
                "original_error_type": type(original_exception).__name__,
                "original_error": str(original_exception)
            })

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a dictionary for logs and JSON responses."""
        result = {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
        }

        # Include non-sensitive context information
        safe_context = {}
        for key, value in self.context.items():
            if key not in ["access_key", "secret_key", "signature"] and value is not None:
                safe_context[key] = value

        if safe_context:
            result["details"] = safe_context

        return result


class TargetAbsentError(PreviewScreenshotError):
    """No target URL could be derived from the query or the path."""
    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Missing required parameter: url",
            error_code="target_absent",
            http_status=HTTP_400_BAD_REQUEST,
            context=context
        )


class InvalidOverridesPayloadError(PreviewScreenshotError):
    """The screenshotone query value is not a valid overrides object."""
    def __init__(self, context: Optional[Dict[str, Any]] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message="Invalid overrides payload",
            error_code="invalid_overrides_payload",
            http_status=HTTP_400_BAD_REQUEST,
            context=context,
            original_exception=original_exception
        )


class InvalidTargetUrlError(PreviewScreenshotError):
    """The resolved target is not an absolute http(s) URL."""
    def __init__(self, url: str, context: Optional[Dict[str, Any]] = None, original_exception: Optional[Exception] = None):
        context = context or {}
        context["url"] = url
        super().__init__(
            message="Invalid URL format",
            error_code="invalid_url",
            http_status=HTTP_400_BAD_REQUEST,
            context=context,
            original_exception=original_exception
        )


class ForbiddenTargetError(PreviewScreenshotError):
    """The target host is outside the allowed domain."""
    def __init__(self, domain: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Only {domain} URLs are allowed",
            error_code="forbidden_target",
            http_status=HTTP_403_FORBIDDEN,
            context=context
        )


class ConfigurationError(PreviewScreenshotError):
    """The service is missing required configuration."""
    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Server configuration error",
            error_code="configuration_error",
            http_status=HTTP_500_INTERNAL_SERVER_ERROR,
            context=context
        )


class ProviderError(PreviewScreenshotError):
    """The screenshot provider failed or answered with an error status."""
    def __init__(self,
                 status_code: Optional[int] = None,
                 context: Optional[Dict[str, Any]] = None,
                 original_exception: Optional[Exception] = None):
        if status_code is not None:
            message = f"Screenshot service error: {status_code}"
            # Only error statuses pass through; an unfollowed redirect is a bad gateway
            http_status = status_code if status_code >= HTTP_400_BAD_REQUEST else HTTP_502_BAD_GATEWAY
        else:
            message = "Screenshot service unavailable"
            http_status = HTTP_502_BAD_GATEWAY

        self.status_code = status_code
        super().__init__(
            message=message,
            error_code="provider_error",
            http_status=http_status,
            context=context,
            original_exception=original_exception
        )
