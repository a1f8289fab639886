import hashlib
import hmac
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from preview_screenshot.core.config import Settings
from preview_screenshot.core.errors import ProviderError
from preview_screenshot.schemas.screenshot import ScreenshotOptions
from preview_screenshot.services.screenshotone import ScreenshotOneProvider

TARGET = "https://stagetimer.io/pricing?cookie_banner=0"


def make_provider(handler) -> ScreenshotOneProvider:
    return ScreenshotOneProvider(
        access_key="test-access-key",
        secret_key="test-secret-key",
        transport=httpx.MockTransport(handler),
    )


class TestTakeUrl:
    """Test cases for signed take URL generation."""

    def test_url_contains_options(self):
        provider = ScreenshotOneProvider("test-access-key", "test-secret-key")
        take_url = provider.generate_take_url(TARGET, ScreenshotOptions(cache_key="pricing"))

        parts = urlsplit(take_url)
        params = parse_qs(parts.query)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://api.screenshotone.com/take"
        assert params["access_key"] == ["test-access-key"]
        assert params["url"] == [TARGET]
        assert params["format"] == ["jpg"]
        assert params["block_ads"] == ["true"]
        assert params["block_cookie_banners"] == ["true"]
        assert params["block_banners_by_heuristics"] == ["true"]
        assert params["block_trackers"] == ["true"]
        assert params["device_scale_factor"] == ["1"]
        assert params["viewport_width"] == ["1200"]
        assert params["viewport_height"] == ["627"]
        assert params["scroll_into_view"] == ["main"]
        assert params["cache"] == ["true"]
        assert params["cache_ttl"] == ["2592000"]
        assert params["cache_key"] == ["pricing"]

    def test_signature_covers_query(self):
        provider = ScreenshotOneProvider("test-access-key", "test-secret-key")
        take_url = provider.generate_take_url(TARGET, ScreenshotOptions())

        query, signature = urlsplit(take_url).query.split("&signature=")
        expected = hmac.new(b"test-secret-key", query.encode(), hashlib.sha256).hexdigest()
        assert signature == expected

    def test_unset_options_are_omitted(self):
        provider = ScreenshotOneProvider("test-access-key", "test-secret-key")
        take_url = provider.generate_take_url(TARGET, ScreenshotOptions(scroll_into_view=None))
        assert "scroll_into_view" not in parse_qs(urlsplit(take_url).query)

    def test_from_settings(self):
        settings = Settings(
            screenshotone_access_key="ak",
            screenshotone_secret_key="sk",
            screenshotone_base_url="https://screenshots.internal/",
        )
        provider = ScreenshotOneProvider.from_settings(settings)
        assert provider.access_key == "ak"
        assert provider.secret_key == "sk"
        assert provider.generate_take_url(TARGET, ScreenshotOptions()).startswith("https://screenshots.internal/take?")


class TestFetchImage:
    """Test cases for fetching images from ScreenshotOne."""

    @pytest.mark.asyncio
    async def test_returns_image_bytes(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, content=b"jpeg-bytes", headers={"content-type": "image/jpeg"})

        provider = make_provider(handler)
        image = await provider.fetch_image(TARGET, ScreenshotOptions())
        await provider.close()

        assert image == b"jpeg-bytes"
        assert len(requests) == 1
        assert requests[0].url.path == "/take"

    @pytest.mark.asyncio
    async def test_error_status_raises_provider_error(self):
        provider = make_provider(lambda request: httpx.Response(500, text="render failed"))

        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch_image(TARGET, ScreenshotOptions())
        await provider.close()

        assert exc_info.value.status_code == 500
        assert exc_info.value.http_status == 500
        assert exc_info.value.message == "Screenshot service error: 500"

    @pytest.mark.asyncio
    async def test_transport_error_raises_bad_gateway(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = make_provider(handler)

        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch_image(TARGET, ScreenshotOptions())
        await provider.close()

        assert exc_info.value.status_code is None
        assert exc_info.value.http_status == 502

    @pytest.mark.asyncio
    async def test_redirect_is_followed(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.host == "api.screenshotone.com":
                return httpx.Response(302, headers={"location": "https://cdn.example/img.jpg"})
            return httpx.Response(200, content=b"jpeg-bytes")

        provider = make_provider(handler)
        image = await provider.fetch_image(TARGET, ScreenshotOptions())
        await provider.close()

        assert image == b"jpeg-bytes"
        assert [str(request.url) for request in requests][-1] == "https://cdn.example/img.jpg"

    @pytest.mark.asyncio
    async def test_unfollowed_redirect_raises_provider_error(self):
        provider = make_provider(lambda request: httpx.Response(302))

        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch_image(TARGET, ScreenshotOptions())
        await provider.close()

        assert exc_info.value.status_code == 302
        assert exc_info.value.http_status == 502
