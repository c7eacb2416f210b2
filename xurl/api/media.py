"""
Chunked media upload.

``MediaUploader`` drives the INIT -> APPEND -> FINALIZE -> STATUS command
sequence of ``/2/media/upload``. Chunks are appended strictly in order;
the server reassembles the file by ``segment_index``.
"""

from __future__ import annotations

import json
import logging
import stat
import time
import urllib.parse
from enum import Enum
from pathlib import Path
from typing import Any

from xurl.core.exceptions import (
    MediaIdNotSetError,
    ParseError,
    ProtocolError,
    StorageError,
)

from .client import ApiClient
from .endpoints import MEDIA_UPLOAD_ENDPOINT

_logger = logging.getLogger(__name__)

CHUNK_SIZE = 4 * 1024 * 1024
MIN_POLL_INTERVAL_SECS = 1
PENDING_PROCESSING_STATES = frozenset({"pending", "in_progress"})


class MediaUploadState(str, Enum):
    """Lifecycle of a single upload."""

    CREATED = "created"
    INITIALIZED = "initialized"
    APPENDING = "appending"
    APPENDED = "appended"
    FINALIZED = "finalized"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _command_url(**params: Any) -> str:
    return f"{MEDIA_UPLOAD_ENDPOINT}?{urllib.parse.urlencode(params)}"


def _processing_info(payload: Any) -> dict[str, Any] | None:
    data = payload.get("data") if isinstance(payload, dict) else None
    info = data.get("processing_info") if isinstance(data, dict) else None
    return info if isinstance(info, dict) else None


class MediaUploader:
    """Upload a local file through the chunked media endpoint.

    Example:
        >>> uploader = MediaUploader(api, "clip.mp4")
        >>> uploader.upload("video/mp4", "amplify_video")
        >>> uploader.media_id
        '1880028106020515840'
    """

    def __init__(
        self,
        client: ApiClient,
        file_path: str | Path | None = None,
        auth_type: str | None = None,
        username: str | None = None,
        headers: list[str] | None = None,
        media_id: str | None = None,
    ) -> None:
        """Bind an uploader to a local file, or to an existing ``media_id``.

        Raises:
            StorageError: If ``file_path`` is not a readable regular file
        """
        self.client = client
        self.auth_type = auth_type
        self.username = username
        self.headers = list(headers or [])
        self.expires_after_secs: int | None = None
        self.file_path: Path | None = None
        self.file_size = 0

        if file_path is not None:
            path = Path(file_path)
            try:
                info = path.stat()
            except OSError as e:
                raise StorageError(f"Error accessing file {path}: {e}") from e
            if not stat.S_ISREG(info.st_mode):
                raise StorageError(f"{path} is not a regular file")
            self.file_path = path
            self.file_size = info.st_size

        self.media_id = media_id
        self.state = MediaUploadState.FINALIZED if media_id else MediaUploadState.CREATED

    @classmethod
    def for_media_id(
        cls,
        client: ApiClient,
        media_id: str,
        auth_type: str | None = None,
        username: str | None = None,
        headers: list[str] | None = None,
    ) -> MediaUploader:
        """Create an uploader for an existing upload, for status checks only."""
        return cls(client, None, auth_type, username, headers, media_id=media_id)

    def _require_media_id(self) -> str:
        if not self.media_id:
            raise MediaIdNotSetError()
        return self.media_id

    def _send(self, method: str, url: str) -> Any:
        return self.client.send_request(
            method, url, self.headers, auth_type=self.auth_type, username=self.username
        )

    def init(self, media_type: str, media_category: str) -> Any:
        """Start the upload and record the media ID.

        Raises:
            ProtocolError: If the upload was already initialized
            ParseError: If the response carries no media ID
        """
        if self.state is not MediaUploadState.CREATED or self.media_id:
            raise ProtocolError("media upload already initialized")
        if self.file_path is None:
            raise ProtocolError("no file to upload")

        _logger.info("Initializing media upload of %d bytes", self.file_size)
        payload = self._send(
            "POST",
            _command_url(
                command="INIT",
                total_bytes=self.file_size,
                media_type=media_type,
                media_category=media_category,
            ),
        )

        data = payload.get("data") if isinstance(payload, dict) else None
        media_id = data.get("id") if isinstance(data, dict) else None
        if not media_id:
            raise ParseError("INIT response missing data.id")

        self.media_id = str(media_id)
        expires = data.get("expires_after_secs")
        self.expires_after_secs = expires if isinstance(expires, int) else None
        self.state = MediaUploadState.INITIALIZED
        return payload

    def append(self) -> int:
        """Upload the file in ``CHUNK_SIZE`` segments, one request per segment.

        Stops at the first failed segment, leaving the state ``APPENDING``.

        Returns:
            Number of segments sent
        """
        media_id = self._require_media_id()
        if self.file_path is None:
            raise ProtocolError("no file to append")

        self.state = MediaUploadState.APPENDING
        segment_index = 0
        uploaded = 0
        try:
            with self.file_path.open("rb") as handle:
                while chunk := handle.read(CHUNK_SIZE):
                    self.client.send_multipart(
                        "POST",
                        MEDIA_UPLOAD_ENDPOINT,
                        {
                            "command": "APPEND",
                            "media_id": media_id,
                            "segment_index": str(segment_index),
                        },
                        file_field="media",
                        file_name=self.file_path.name,
                        file_data=chunk,
                        headers=self.headers,
                        auth_type=self.auth_type,
                        username=self.username,
                    )
                    uploaded += len(chunk)
                    segment_index += 1
                    _logger.info(
                        "Uploaded %d of %d bytes (%.2f%%)",
                        uploaded,
                        self.file_size,
                        uploaded / self.file_size * 100 if self.file_size else 100.0,
                    )
        except OSError as e:
            raise StorageError(f"Error reading {self.file_path}: {e}") from e

        self.state = MediaUploadState.APPENDED
        return segment_index

    def finalize(self) -> Any:
        """Complete the upload; the state becomes ``PROCESSING`` when the
        server reports asynchronous processing."""
        media_id = self._require_media_id()
        payload = self._send("POST", _command_url(command="FINALIZE", media_id=media_id))
        if _processing_info(payload) is not None:
            self.state = MediaUploadState.PROCESSING
        else:
            self.state = MediaUploadState.FINALIZED
        return payload

    def check_status(self) -> Any:
        media_id = self._require_media_id()
        return self._send("GET", _command_url(command="STATUS", media_id=media_id))

    def wait_for_processing(self) -> Any:
        """Poll STATUS until processing succeeds or fails.

        A payload without ``processing_info`` has nothing to wait for and is
        returned as is.

        Raises:
            ProtocolError: When the server reports processing failed or an
                unknown processing state
        """
        self._require_media_id()
        while True:
            payload = self.check_status()
            info = _processing_info(payload)
            if info is None:
                _logger.info("No processing info for media %s", self.media_id)
                return payload
            state = info.get("state")

            if state == "succeeded":
                self.state = MediaUploadState.SUCCEEDED
                _logger.info("Media processing complete")
                return payload
            if state == "failed":
                self.state = MediaUploadState.FAILED
                detail = info.get("error")
                message = "Media processing failed"
                if detail:
                    message += f": {json.dumps(detail)}"
                raise ProtocolError(message)
            if state not in PENDING_PROCESSING_STATES:
                raise ProtocolError(f"Unexpected media processing state: {state!r}")

            self.state = MediaUploadState.PROCESSING
            check_after = info.get("check_after_secs")
            if not isinstance(check_after, int):
                check_after = 0
            delay = max(check_after, MIN_POLL_INTERVAL_SECS)
            _logger.info(
                "Media processing in progress (%s%%), checking again in %d seconds",
                info.get("progress_percent", 0),
                delay,
            )
            time.sleep(delay)

    def upload(self, media_type: str, media_category: str, wait: bool = True) -> Any:
        """Run INIT, APPEND and FINALIZE, then wait for video processing.

        Returns:
            The last response: the processing result when waited on,
            otherwise the FINALIZE response
        """
        self.init(media_type, media_category)
        self.append()
        payload = self.finalize()
        if wait and "video" in media_category and self.state is MediaUploadState.PROCESSING:
            return self.wait_for_processing()
        return payload


def _query_value(source: str, name: str) -> str | None:
    values = urllib.parse.parse_qs(source, keep_blank_values=True).get(name)
    return values[0] if values else None


def extract_media_id(url: str, data: str = "") -> str | None:
    """Find ``media_id`` in the URL query string, then in form data."""
    return _query_value(urllib.parse.urlsplit(url).query, "media_id") or _query_value(
        data, "media_id"
    )


def extract_segment_index(url: str, data: str = "") -> str | None:
    """Find ``segment_index`` in the URL query string, then in form data."""
    return _query_value(urllib.parse.urlsplit(url).query, "segment_index") or _query_value(
        data, "segment_index"
    )


def is_media_append_request(url: str, media_file: str | None) -> bool:
    """Check whether a raw request is an APPEND that should carry ``media_file``."""
    return (
        MEDIA_UPLOAD_ENDPOINT in url
        and _query_value(urllib.parse.urlsplit(url).query, "command") == "APPEND"
        and bool(media_file)
    )


def send_media_append(
    client: ApiClient,
    url: str,
    media_file: str | Path,
    method: str = "POST",
    headers: list[str] | None = None,
    data: str = "",
    auth_type: str | None = None,
    username: str | None = None,
) -> Any:
    """Send a single APPEND request with the whole of ``media_file`` as the segment.

    Raises:
        ProtocolError: If no ``media_id`` is given in the URL or data
        StorageError: If the file cannot be read
    """
    media_id = extract_media_id(url, data)
    if not media_id:
        raise ProtocolError("media_id is required for APPEND command")
    segment_index = extract_segment_index(url, data) or "0"

    path = Path(media_file)
    try:
        content = path.read_bytes()
    except OSError as e:
        raise StorageError(f"Error opening file {path}: {e}") from e

    return client.send_multipart(
        method,
        url,
        {"command": "APPEND", "media_id": media_id, "segment_index": segment_index},
        file_field="media",
        file_name=path.name,
        file_data=content,
        headers=headers or [],
        auth_type=auth_type,
        username=username,
    )


__all__ = [
    "CHUNK_SIZE",
    "MediaUploadState",
    "MediaUploader",
    "extract_media_id",
    "extract_segment_index",
    "is_media_append_request",
    "send_media_append",
]
