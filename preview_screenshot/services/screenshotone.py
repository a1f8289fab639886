import hashlib
import hmac
from typing import List, Optional, Protocol, Tuple
from urllib.parse import urlencode

import httpx

from preview_screenshot.core.config import Settings
from preview_screenshot.core.errors import ProviderError
from preview_screenshot.core.logging import get_logger
from preview_screenshot.schemas.screenshot import ScreenshotOptions

logger = get_logger("screenshotone")


class ScreenshotProvider(Protocol):
    """Anything that can render a page to image bytes."""

    async def fetch_image(self, url: str, options: ScreenshotOptions) -> bytes:
        ...

    async def close(self) -> None:
        ...


class ScreenshotOneProvider:
    """Fetches screenshots from the ScreenshotOne take API with signed URLs."""

    def __init__(self,
                 access_key: str,
                 secret_key: str,
                 base_url: str = "https://api.screenshotone.com",
                 timeout: float = 60.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.access_key = access_key
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScreenshotOneProvider":
        return cls(
            access_key=settings.screenshotone_access_key,
            secret_key=settings.screenshotone_secret_key,
            base_url=settings.screenshotone_base_url,
            timeout=settings.provider_timeout,
        )

    def _query_params(self, url: str, options: ScreenshotOptions) -> List[Tuple[str, str]]:
        params = [("access_key", self.access_key), ("url", url)]
        for key, value in options.model_dump(exclude_none=True).items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            elif isinstance(value, float) and value.is_integer():
                value = int(value)
            params.append((key, str(value)))
        return params

    def _sign(self, query: str) -> str:
        """Sign the query string using HMAC-SHA256 with the secret key.

        Args:
            query: Encoded query string, without the leading '?'

        Returns:
            Hex-encoded signature
        """
        return hmac.new(self.secret_key.encode(), query.encode(), hashlib.sha256).hexdigest()

    def generate_take_url(self, url: str, options: ScreenshotOptions) -> str:
        """Generate a signed take URL for the given page and options."""
        query = urlencode(self._query_params(url, options))
        return f"{self.base_url}/take?{query}&signature={self._sign(query)}"

    async def fetch_image(self, url: str, options: ScreenshotOptions) -> bytes:
        """Render a page and return the image bytes.

        Args:
            url: Page to capture
            options: Rendering options

        Returns:
            The raw image

        Raises:
            ProviderError: If the request fails or ScreenshotOne answers with an error status
        """
        take_url = self.generate_take_url(url, options)

        try:
            response = await self._client.get(take_url)
        except httpx.RequestError as e:
            logger.error(f"Screenshot request failed for {url}: {e}")
            raise ProviderError(context={"url": url}, original_exception=e)

        if not response.is_success:
            logger.warning(f"ScreenshotOne returned {response.status_code} for {url}")
            raise ProviderError(
                status_code=response.status_code,
                context={"url": url, "provider_response": response.text[:500]}
            )

        logger.debug(f"Fetched screenshot of {url} ({len(response.content)} bytes)")
        return response.content

    async def close(self) -> None:
        await self._client.aclose()
