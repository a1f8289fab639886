import json
from typing import Optional

from pydantic import ValidationError

from preview_screenshot.core.errors import InvalidOverridesPayloadError
from preview_screenshot.schemas.screenshot import ScreenshotOverrides

OVERRIDES_PARAM = "screenshotone"


def parse_overrides(raw_value: Optional[str]) -> ScreenshotOverrides:
    """
    Parse the ``screenshotone`` query parameter.

    Args:
        raw_value: The raw parameter value, None when the parameter is absent

    Returns:
        The parsed overrides, empty when raw_value is None

    Raises:
        InvalidOverridesPayloadError: If raw_value is not a JSON object or a
            recognized key has the wrong type
    """
    if raw_value is None:
        return ScreenshotOverrides()

    try:
        payload = json.loads(raw_value)
    except ValueError as e:
        raise InvalidOverridesPayloadError(context={"value": raw_value}, original_exception=e)

    if not isinstance(payload, dict):
        raise InvalidOverridesPayloadError(context={"value": raw_value})

    try:
        return ScreenshotOverrides.model_validate(payload)
    except ValidationError as e:
        raise InvalidOverridesPayloadError(context={"value": raw_value}, original_exception=e)
