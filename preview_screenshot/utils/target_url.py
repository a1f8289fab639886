"""
Target URL encoding
Maps an incoming request URL to the page that should be screenshotted,
and back again.

Three request forms are accepted:

1. Query parameter: ``/?url=https://stagetimer.io/pricing``
2. Literal path: ``/stagetimer.io/output/123/.jpg``
3. Encoded path: ``/stagetimer.io__output__123.jpg`` (``__`` stands in for ``/``)

The ``__`` marker has no escape, so a target path that itself contains a
double underscore cannot be expressed in path form. Use the ``url`` query
parameter for such pages.
"""

from dataclasses import dataclass, field
from typing import Dict, NamedTuple, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit

from preview_screenshot.core.errors import InvalidTargetUrlError
from preview_screenshot.core.logging import get_logger
from preview_screenshot.utils.overrides import OVERRIDES_PARAM, parse_overrides

logger = get_logger("target_url")

MARKER = "__"
JPG_EXTENSION = ".jpg"
URL_PARAM = "url"

# Query parameters addressed to this service, never forwarded to the target
CONTROL_PARAMS = (URL_PARAM, OVERRIDES_PARAM)


@dataclass(frozen=True)
class RequestURL:
    """The parts of an incoming request URL the resolver looks at."""
    path: str
    query: Dict[str, str] = field(default_factory=dict)
    search: str = ""

    def __post_init__(self):
        if not self.path.startswith("/"):
            object.__setattr__(self, "path", "/" + self.path)

    @classmethod
    def from_string(cls, url: str) -> "RequestURL":
        """Parse a full or path-only URL string.

        Duplicate query keys collapse to their last value.
        """
        parts = urlsplit(url)
        return cls(
            path=parts.path or "/",
            query=dict(parse_qsl(parts.query, keep_blank_values=True)),
            search=parts.query,
        )

    @classmethod
    def from_request(cls, request) -> "RequestURL":
        """Build from a Starlette request.

        The path is taken as sent, still percent-encoded, so an escaped
        ``?`` or ``#`` stays part of the path.
        """
        raw_path = request.scope.get("raw_path")
        if raw_path:
            path = raw_path.decode("latin-1").split("?", 1)[0]
        else:
            path = request.scope.get("path", "")
        return cls(
            path=path or "/",
            query=dict(request.query_params),
            search=request.url.query,
        )

    def forwarded_query(self) -> Dict[str, str]:
        """Query parameters meant for the target site."""
        return {key: value for key, value in self.query.items() if key not in CONTROL_PARAMS}


@dataclass(frozen=True)
class LiteralPath:
    """A path that already uses real ``/`` separators."""
    value: str

    def decode(self) -> str:
        return self.value


@dataclass(frozen=True)
class EncodedPath:
    """A path where ``__`` replaces every ``/`` of the target."""
    value: str

    def decode(self) -> str:
        return self.value.replace(MARKER, "/")


PathForm = Union[LiteralPath, EncodedPath]


def classify_path(path: str) -> PathForm:
    """Pick the path form. Any ``__`` makes the whole path encoded."""
    if MARKER in path:
        return EncodedPath(path)
    return LiteralPath(path)


def _strip_leading_slash(path: str) -> str:
    if path.startswith("/"):
        return path[1:]
    return path


def _strip_extension(path: str) -> str:
    # "output/123/.jpg" keeps its trailing slash: only the extension goes
    if path.endswith(JPG_EXTENSION):
        return path[:-len(JPG_EXTENSION)]
    return path


def resolve_target_url(request_url: RequestURL) -> Optional[str]:
    """
    Resolve the absolute URL to screenshot.

    Args:
        request_url: The incoming request URL

    Returns:
        The target URL, or None when neither the query nor the path names one.
        The host is not validated here.
    """
    # Legacy query parameter wins over everything else
    target_url = request_url.query.get(URL_PARAM)
    if target_url:
        return target_url

    path = _strip_extension(_strip_leading_slash(request_url.path))
    if not path:
        return None

    target_url = f"https://{classify_path(path).decode()}"

    forwarded = request_url.forwarded_query()
    if forwarded:
        target_url += f"?{urlencode(list(forwarded.items()))}"

    return target_url


def derive_filename(request_url: RequestURL) -> str:
    """
    Derive the download filename for the screenshot.

    Args:
        request_url: The incoming request URL

    Returns:
        A non-empty filename ending in .jpg
    """
    path = _strip_leading_slash(request_url.path)

    if path.endswith(JPG_EXTENSION):
        return path.split("/")[-1]

    # Encoded paths keep the whole target identity
    if MARKER in path:
        return f"{path}{JPG_EXTENSION}"

    segments = path.split("/")
    if len(segments) > 1:
        return f"{segments[0]}{MARKER}{segments[-1]}{JPG_EXTENSION}"

    return f"{path}{JPG_EXTENSION}"


class EncodedTarget(NamedTuple):
    """A target URL rewritten into this service's path form."""
    worker_url: str
    filename: str


def encode_target_url(target_url: str, overrides_json: Optional[str] = None, base_url: str = "") -> EncodedTarget:
    """
    Rewrite a page URL into an encoded-path screenshot URL.

    Args:
        target_url: Absolute http(s) URL of the page
        overrides_json: Optional JSON object passed through as ``screenshotone``
        base_url: Public base URL of this service

    Returns:
        The screenshot URL and the filename it will be served under

    Raises:
        InvalidTargetUrlError: If target_url is not an absolute http(s) URL
        InvalidOverridesPayloadError: If overrides_json is not a JSON object
    """
    try:
        parts = urlsplit(target_url)
        hostname = parts.hostname
    except ValueError as e:
        raise InvalidTargetUrlError(target_url, original_exception=e)

    if parts.scheme not in ("http", "https") or not hostname:
        raise InvalidTargetUrlError(target_url)

    full_path = hostname + parts.path
    if full_path.endswith("/"):
        full_path = full_path[:-1]
    encoded_path = full_path.replace("/", MARKER)

    params = parse_qsl(parts.query, keep_blank_values=True)
    if overrides_json:
        parse_overrides(overrides_json)
        params = [(key, value) for key, value in params if key != OVERRIDES_PARAM]
        params.append((OVERRIDES_PARAM, overrides_json))
    query = f"?{urlencode(params)}" if params else ""

    worker_url = f"{base_url.rstrip('/')}/{encoded_path}{JPG_EXTENSION}{query}"
    logger.debug(f"Encoded {target_url} -> {worker_url}")

    return EncodedTarget(worker_url=worker_url, filename=f"{encoded_path}{JPG_EXTENSION}")
