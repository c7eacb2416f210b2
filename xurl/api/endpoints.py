"""Known X API endpoints with special handling."""

import urllib.parse

MEDIA_UPLOAD_ENDPOINT = "/2/media/upload"

# Endpoints that deliver a long-lived stream of newline-delimited JSON
STREAMING_ENDPOINTS = frozenset(
    {
        "/2/tweets/search/stream",
        "/2/tweets/sample/stream",
        "/2/tweets/sample10/stream",
        "/2/tweets/firehose/stream",
        "/2/tweets/firehose/stream/lang/en",
        "/2/tweets/firehose/stream/lang/ja",
        "/2/tweets/firehose/stream/lang/ko",
        "/2/tweets/firehose/stream/lang/pt",
    }
)


def endpoint_path(endpoint: str) -> str:
    """Return the path of an absolute URL or a relative endpoint, without query."""
    path = urllib.parse.urlsplit(endpoint).path
    if not path.startswith("/"):
        path = "/" + path
    return path


def is_streaming_endpoint(endpoint: str) -> bool:
    """Check whether responses from ``endpoint`` should be streamed.

    Example:
        >>> is_streaming_endpoint("https://api.x.com/2/tweets/search/stream/")
        True
    """
    return endpoint_path(endpoint).rstrip("/") in STREAMING_ENDPOINTS


__all__ = [
    "MEDIA_UPLOAD_ENDPOINT",
    "STREAMING_ENDPOINTS",
    "endpoint_path",
    "is_streaming_endpoint",
]
