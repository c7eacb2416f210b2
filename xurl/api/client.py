"""X API client.

Builds requests against the API base URL, attaches an Authorization
header chosen by ``AuthSelector`` and decodes JSON responses. Streaming
endpoints are read line by line.
"""

from __future__ import annotations

import json
import logging
import urllib.parse
from collections.abc import Iterable, Iterator
from typing import Any

import httpx

from xurl import __version__
from xurl.auth.http_client import error_payload
from xurl.auth.selector import AuthSelector
from xurl.core.config import Config
from xurl.core.exceptions import ApiError, AuthError, NetworkError

_logger = logging.getLogger(__name__)

# Longest line accepted from a streaming response
MAX_STREAM_LINE_BYTES = 1024 * 1024

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def parse_header_lines(headers: Iterable[str]) -> list[tuple[str, str]]:
    """Parse ``"Name: value"`` strings; entries without a colon are skipped."""
    parsed = []
    for header in headers:
        name, sep, value = header.partition(":")
        if not sep:
            _logger.debug("Ignoring malformed header %r", header)
            continue
        parsed.append((name.strip(), value.strip()))
    return parsed


def decode_response(response: httpx.Response) -> Any:
    """Decode a response body, raising ``ApiError`` for non-2xx statuses.

    An empty or non-JSON success body decodes to ``{}``.
    """
    if response.is_error:
        raise ApiError(response.status_code, error_payload(response))
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        _logger.debug("Non-JSON body from %s, returning empty object", response.request.url)
        return {}


class ApiClient:
    """Send authenticated requests to the X API.

    Args:
        config: Supplies the API base URL and request timeout
        selector: Produces Authorization headers; without one requests
            are sent unauthenticated
        client: Optional pre-built httpx client

    Example:
        >>> api = ApiClient(config, AuthSelector(store))
        >>> api.send_request("GET", "/2/users/me")
        {'data': {'id': '...', 'username': '...'}}
    """

    def __init__(
        self,
        config: Config,
        selector: AuthSelector | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.config = config
        self.base_url = config.api_base_url
        self.selector = selector
        self._client = client or httpx.Client(timeout=httpx.Timeout(config.http_timeout))

    def close(self) -> None:
        """Close the API connection pool and the selector's token clients."""
        self._client.close()
        if self.selector is not None:
            self.selector.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def build_url(self, endpoint: str) -> str:
        """Resolve ``endpoint`` against the base URL unless it is absolute."""
        if endpoint.lower().startswith("http"):
            return endpoint
        return self.base_url.rstrip("/") + "/" + endpoint.lstrip("/")

    def build_headers(
        self,
        method: str,
        url: str,
        headers: Iterable[str] = (),
        auth_type: str | None = None,
        username: str | None = None,
        content_type: str | None = None,
        form_params: dict[str, str] | None = None,
    ) -> dict[str, str]:
        """Assemble request headers.

        A caller-supplied Authorization header is kept as-is. Otherwise the
        selector is asked for one: failures of an explicit ``auth_type`` are
        raised, while a request without a scheme goes out unauthenticated
        when no credential is usable.
        """
        result: dict[str, str] = {}
        for name, value in parse_header_lines(headers):
            result[name] = value
        if content_type:
            result["Content-Type"] = content_type

        has_auth = any(name.lower() == "authorization" for name in result)
        if not has_auth and self.selector is not None:
            try:
                result["Authorization"] = self.selector.header_for(
                    method, url, scheme=auth_type, username=username, params=form_params
                )
            except AuthError as e:
                if auth_type:
                    raise
                _logger.warning("Sending request without authentication: %s", e)

        result["User-Agent"] = f"xurl/{__version__}"
        return result

    def send_request(
        self,
        method: str,
        endpoint: str,
        headers: Iterable[str] = (),
        data: str = "",
        auth_type: str | None = None,
        username: str | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        ``data`` is sent for POST, PUT and PATCH: as JSON when it parses as
        JSON, otherwise form-encoded.

        Raises:
            ApiError: On a non-2xx response
            AuthError: If an explicitly requested scheme cannot be used
            NetworkError: If the request cannot be completed
        """
        method = method.upper()
        url = self.build_url(endpoint)
        body, content_type, form_params = _prepare_body(method, data)
        request_headers = self.build_headers(
            method, url, headers, auth_type, username, content_type, form_params
        )

        _logger.debug("> %s %s", method, url)
        try:
            response = self._client.request(method, url, headers=request_headers, content=body)
        except httpx.HTTPError as e:
            raise NetworkError(f"Request to {url} failed: {e}") from e
        _logger.debug("< %s %s", response.status_code, response.reason_phrase)

        return decode_response(response)

    def send_multipart(
        self,
        method: str,
        endpoint: str,
        form_fields: dict[str, str],
        file_field: str | None = None,
        file_name: str | None = None,
        file_data: bytes | None = None,
        headers: Iterable[str] = (),
        auth_type: str | None = None,
        username: str | None = None,
    ) -> Any:
        """Send a ``multipart/form-data`` request with an optional file part.

        Raises:
            ApiError: On a non-2xx response
            NetworkError: If the request cannot be completed
        """
        method = method.upper()
        url = self.build_url(endpoint)
        request_headers = self.build_headers(method, url, headers, auth_type, username)

        files = None
        if file_field and file_data:
            files = {file_field: (file_name or file_field, file_data)}

        _logger.debug("> %s %s (multipart fields=%s)", method, url, sorted(form_fields))
        try:
            response = self._client.request(
                method, url, headers=request_headers, data=form_fields, files=files
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Request to {url} failed: {e}") from e
        _logger.debug("< %s %s", response.status_code, response.reason_phrase)

        return decode_response(response)

    def stream_request(
        self,
        method: str,
        endpoint: str,
        headers: Iterable[str] = (),
        data: str = "",
        auth_type: str | None = None,
        username: str | None = None,
    ) -> Iterator[str]:
        """Yield non-empty lines of a streaming response as they arrive.

        The connection has no read timeout. A line longer than
        ``MAX_STREAM_LINE_BYTES`` ends the stream with an error.

        Raises:
            ApiError: If the server answers with a non-2xx status
            NetworkError: If the connection fails or a line is too long
        """
        method = method.upper()
        url = self.build_url(endpoint)
        body, content_type, form_params = _prepare_body(method, data)
        request_headers = self.build_headers(
            method, url, headers, auth_type, username, content_type, form_params
        )

        _logger.info("Connecting to streaming endpoint %s", url)
        try:
            with self._client.stream(
                method,
                url,
                headers=request_headers,
                content=body,
                timeout=httpx.Timeout(self.config.http_timeout, read=None),
            ) as response:
                if response.is_error:
                    response.read()
                    raise ApiError(response.status_code, error_payload(response))
                yield from _iter_stream_lines(response.iter_bytes())
        except httpx.HTTPError as e:
            raise NetworkError(f"Stream from {url} failed: {e}") from e
        _logger.info("End of stream from %s", url)


def _prepare_body(method: str, data: str) -> tuple[bytes | None, str | None, dict[str, str] | None]:
    if not data or method not in _BODY_METHODS:
        return None, None, None
    try:
        json.loads(data)
    except ValueError:
        form_params = dict(urllib.parse.parse_qsl(data, keep_blank_values=True))
        return data.encode("utf-8"), "application/x-www-form-urlencoded", form_params
    return data.encode("utf-8"), "application/json", None


def _iter_stream_lines(chunks: Iterable[bytes]) -> Iterator[str]:
    buffer = bytearray()
    for chunk in chunks:
        buffer.extend(chunk)
        while True:
            newline = buffer.find(b"\n")
            if newline < 0:
                break
            line = bytes(buffer[:newline]).rstrip(b"\r")
            del buffer[: newline + 1]
            if len(line) > MAX_STREAM_LINE_BYTES:
                raise NetworkError("line too long")
            if line:
                yield line.decode("utf-8", errors="replace")
        if len(buffer) > MAX_STREAM_LINE_BYTES:
            raise NetworkError("line too long")

    tail = bytes(buffer).rstrip(b"\r")
    if tail:
        yield tail.decode("utf-8", errors="replace")


__all__ = [
    "ApiClient",
    "MAX_STREAM_LINE_BYTES",
    "decode_response",
    "parse_header_lines",
]
