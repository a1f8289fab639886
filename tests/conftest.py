import os
import sys
from typing import List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

# Add the project root directory to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from preview_screenshot.core.config import Settings
from preview_screenshot.main import create_app
from preview_screenshot.schemas.screenshot import ScreenshotOptions

FAKE_IMAGE = b"\xff\xd8\xff\xe0fake-jpeg"


class FakeProvider:
    """Screenshot provider double that records every capture."""

    def __init__(self, image: bytes = FAKE_IMAGE, error: Optional[Exception] = None):
        self.image = image
        self.error = error
        self.calls: List[Tuple[str, ScreenshotOptions]] = []
        self.closed = False

    async def fetch_image(self, url: str, options: ScreenshotOptions) -> bytes:
        self.calls.append((url, options))
        if self.error:
            raise self.error
        return self.image

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def test_settings():
    """Settings with credentials, independent of the environment."""
    return Settings(
        screenshotone_access_key="test-access-key",
        screenshotone_secret_key="test-secret-key",
        allowed_domain="stagetimer.io",
        cache_ttl_seconds=2592000,
        default_viewport_width=1200,
        default_viewport_height=627,
        default_device_scale_factor=1,
        default_scroll_into_view="main",
        log_requests=False,
    )


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(test_settings, provider):
    """Create a test client for the app."""
    return TestClient(create_app(settings=test_settings, provider=provider))


@pytest.fixture
def make_client(test_settings):
    """Build a client around a given provider and optional settings."""
    def _make_client(provider, settings=None):
        return TestClient(create_app(settings=settings or test_settings, provider=provider))
    return _make_client


@pytest.fixture
def failing_provider():
    """Build a provider that raises the given error on every capture."""
    def _failing_provider(error):
        return FakeProvider(error=error)
    return _failing_provider
