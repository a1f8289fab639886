import re
from typing import Dict
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response

from preview_screenshot.core.config import Settings
from preview_screenshot.core.errors import (
    ConfigurationError,
    ForbiddenTargetError,
    InvalidTargetUrlError,
    TargetAbsentError,
)
from preview_screenshot.core.logging import get_logger
from preview_screenshot.schemas.screenshot import ScreenshotOptions
from preview_screenshot.services.screenshotone import ScreenshotProvider
from preview_screenshot.utils.overrides import OVERRIDES_PARAM, parse_overrides
from preview_screenshot.utils.target_url import RequestURL, derive_filename, resolve_target_url

# Create a router for screenshot endpoints
router = APIRouter(tags=["screenshots"])

# Initialize logger
logger = get_logger("screenshot_api")

CACHE_KEY_PARAM = "cacheKey"

ROBOTS_TXT = "User-agent: *\nAllow: /\n"

# Quotes and control characters cannot appear in a quoted header filename
UNSAFE_FILENAME_CHARS = re.compile(r"[\x00-\x1f\x7f\"]")


def _validate_target(target_url: str, allowed_domain: str) -> None:
    """Reject targets that are not absolute http(s) URLs on the allowed domain."""
    try:
        parts = urlsplit(target_url)
        hostname = parts.hostname
    except ValueError as e:
        raise InvalidTargetUrlError(target_url, original_exception=e)

    if parts.scheme not in ("http", "https") or not hostname:
        raise InvalidTargetUrlError(target_url)

    allowed_domain = allowed_domain.lower()
    if hostname != allowed_domain and not hostname.endswith(f".{allowed_domain}"):
        raise ForbiddenTargetError(allowed_domain, context={"url": target_url, "hostname": hostname})


def _set_query_param(url: str, key: str, value: str) -> str:
    parts = urlsplit(url)
    params = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != key]
    params.append((key, value))
    return urlunsplit(parts._replace(query=urlencode(params)))


def _content_disposition(filename: str) -> str:
    filename = UNSAFE_FILENAME_CHARS.sub("", filename)
    if filename.isascii():
        return f'inline; filename="{filename}"'
    # RFC 6266 form for names the latin-1 header encoding cannot carry
    return f"inline; filename*=UTF-8''{quote(filename)}"


def _image_headers(filename: str, cache_ttl: int) -> Dict[str, str]:
    return {
        "Cache-Control": f"public, max-age={cache_ttl}",
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET",
        "Content-Disposition": _content_disposition(filename),
    }


@router.get(
    "/robots.txt",
    response_class=PlainTextResponse,
    include_in_schema=False,
)
async def robots_txt() -> str:
    """Allow crawlers, so link preview bots can fetch the images."""
    return ROBOTS_TXT


@router.get(
    "/{path:path}",
    response_class=Response,
    summary="Screenshot a page",
    description="""
    Render a screenshot of a page on the allowed domain and return it as a JPEG.

    ## Addressing the page
    - Query parameter: `/?url=https://stagetimer.io/pricing`
    - Literal path: `/stagetimer.io/output/123/.jpg`
    - Encoded path: `/stagetimer.io__output__123.jpg` (`__` replaces `/`)

    The `url` parameter wins over the path. Other query parameters are
    forwarded to the target page.

    ## Overrides
    `screenshotone` takes a JSON object with `viewport_width`, `viewport_height`,
    `device_scale_factor`, `scroll_into_view` and `cache_key`. Invalid JSON is
    rejected with 400.
    """,
    responses={
        200: {"content": {"image/jpeg": {}}, "description": "The screenshot"},
        400: {"description": "No target URL, invalid URL or invalid overrides"},
        403: {"description": "Target is outside the allowed domain"},
    },
)
async def take_screenshot(request: Request, path: str) -> Response:
    """Resolve the target page, fetch its screenshot and proxy the image back.

    Args:
        request: The incoming request
        path: Catch-all path, read through the request URL

    Returns:
        The JPEG response

    Raises:
        PreviewScreenshotError: For any rejected request or provider failure
    """
    settings: Settings = request.app.state.settings
    provider: ScreenshotProvider = request.app.state.provider

    request_url = RequestURL.from_request(request)

    # Fail fast on bad overrides, before any provider call
    overrides = parse_overrides(request_url.query.get(OVERRIDES_PARAM))

    target_url = resolve_target_url(request_url)
    if not target_url:
        raise TargetAbsentError(context={"path": request_url.path})

    _validate_target(target_url, settings.allowed_domain)

    if not settings.has_provider_credentials():
        raise ConfigurationError(context={"missing": "SCREENSHOTONE_ACCESS_KEY/SCREENSHOTONE_SECRET_KEY"})

    capture_url = _set_query_param(target_url, "cookie_banner", "0")

    options = ScreenshotOptions(
        device_scale_factor=settings.default_device_scale_factor,
        viewport_width=settings.default_viewport_width,
        viewport_height=settings.default_viewport_height,
        scroll_into_view=settings.default_scroll_into_view,
        cache_ttl=settings.cache_ttl_seconds,
        cache_key=request_url.query.get(CACHE_KEY_PARAM) or target_url,
    ).with_overrides(overrides)

    logger.info(f"Capturing {capture_url}")
    image = await provider.fetch_image(capture_url, options)

    return Response(
        content=image,
        media_type="image/jpeg",
        headers=_image_headers(derive_filename(request_url), settings.cache_ttl_seconds),
    )
