#!/usr/bin/env python3
"""
Convert a page URL to the screenshot service's encoded path format.

Usage:
    python scripts/convert_url.py "https://stagetimer.io/pricing"
    python scripts/convert_url.py "https://stagetimer.io/stats" '{"viewport_width":960,"viewport_height":550,"device_scale_factor":2}'
"""

import argparse
import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from preview_screenshot.core.config import settings
from preview_screenshot.core.errors import PreviewScreenshotError
from preview_screenshot.utils.target_url import encode_target_url


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Convert a page URL to a screenshot URL")
    parser.add_argument("url", help="Page URL, e.g. https://stagetimer.io/pricing")
    parser.add_argument("screenshotone", nargs="?", default=None,
                        help="JSON object with screenshot overrides")
    parser.add_argument("--base-url", default=settings.public_base_url,
                        help=f"Public base URL of the service (default: {settings.public_base_url})")
    args = parser.parse_args(argv)

    try:
        encoded = encode_target_url(args.url, args.screenshotone, base_url=args.base_url)
    except PreviewScreenshotError as e:
        print(f"Invalid URL or JSON: {e.message}", file=sys.stderr)
        return 1

    print("\nScreenshot URL:")
    print(encoded.worker_url)
    print("\nFilename:")
    print(encoded.filename)
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
