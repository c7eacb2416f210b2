"""X API access: request client, streaming endpoints and chunked media upload."""

from .client import ApiClient
from .endpoints import STREAMING_ENDPOINTS, is_streaming_endpoint
from .media import (
    MediaUploader,
    MediaUploadState,
    extract_media_id,
    extract_segment_index,
    is_media_append_request,
    send_media_append,
)

__all__ = [
    "ApiClient",
    "STREAMING_ENDPOINTS",
    "is_streaming_endpoint",
    "MediaUploader",
    "MediaUploadState",
    "extract_media_id",
    "extract_segment_index",
    "is_media_append_request",
    "send_media_append",
]
