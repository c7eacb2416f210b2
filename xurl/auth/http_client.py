"""
HTTP client abstraction for the auth package.

Token endpoint and user-info calls go through ``HttpClient`` so tests can
swap the transport. The default implementation uses httpx. Requests are
never retried: a failed token exchange or refresh is reported to the user
as-is.
"""

from __future__ import annotations

import abc
import logging
import typing
from dataclasses import dataclass

import httpx

from xurl.core.exceptions import ApiError, NetworkError, ParseError

_logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


# =============================================================================
# Response
# =============================================================================


@dataclass
class HttpResponse:
    """HTTP response wrapper adapting httpx.Response to our interface."""

    _raw: httpx.Response

    @property
    def status_code(self) -> int:
        return self._raw.status_code

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._raw.headers)

    @property
    def text(self) -> str:
        return self._raw.text

    def json(self) -> dict[str, typing.Any]:
        """Decode the body as a JSON object.

        Raises:
            ParseError: If the body is not a JSON object
        """
        try:
            data = self._raw.json()
        except ValueError as e:
            raise ParseError(f"Invalid JSON from {self._raw.request.url}: {e}") from e
        if not isinstance(data, dict):
            raise ParseError(f"Expected a JSON object from {self._raw.request.url}")
        return data


def error_payload(response: httpx.Response) -> typing.Any:
    """Return the decoded JSON error body, or the raw text if it is not JSON."""
    try:
        return response.json()
    except ValueError:
        return response.text


# =============================================================================
# Abstract Client
# =============================================================================


class HttpClient(abc.ABC):
    """Abstract HTTP client used for token endpoint and user-info calls."""

    @abc.abstractmethod
    def post(
        self,
        url: str,
        data: dict[str, str],
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
    ) -> HttpResponse:
        """POST a form-encoded body.

        Raises:
            ApiError: If the server answers with a non-2xx status
            NetworkError: If the request cannot be completed
        """

    @abc.abstractmethod
    def get(self, url: str, headers: dict[str, str] | None = None) -> HttpResponse:
        """GET a resource.

        Raises:
            ApiError: If the server answers with a non-2xx status
            NetworkError: If the request cannot be completed
        """

    def close(self) -> None:
        """Release pooled connections, if any."""


# =============================================================================
# httpx Implementation
# =============================================================================


class HttpxHttpClient(HttpClient):
    """Default HTTP client using httpx.

    Example:
        >>> client = HttpxHttpClient()
        >>> response = client.post(
        ...     "https://api.x.com/2/oauth2/token",
        ...     {"grant_type": "refresh_token", "refresh_token": "..."},
        ... )
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, client: httpx.Client | None = None):
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout))

    def post(
        self,
        url: str,
        data: dict[str, str],
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
    ) -> HttpResponse:
        _logger.debug("HTTP POST %s (fields=%s)", url, sorted(data))
        return self._send(
            lambda: self._client.post(url, data=data, headers=headers, auth=auth),
            url,
        )

    def get(self, url: str, headers: dict[str, str] | None = None) -> HttpResponse:
        _logger.debug("HTTP GET %s", url)
        return self._send(lambda: self._client.get(url, headers=headers), url)

    def close(self) -> None:
        self._client.close()

    def _send(self, call: typing.Callable[[], httpx.Response], url: str) -> HttpResponse:
        try:
            response = call()
        except httpx.HTTPError as e:
            raise NetworkError(f"Request to {url} failed: {e}") from e

        _logger.debug(
            "HTTP %s from %s (body=%d bytes)", response.status_code, url, len(response.content)
        )

        if response.is_error:
            raise ApiError(response.status_code, error_payload(response))

        return HttpResponse(response)


__all__ = [
    "HttpClient",
    "HttpResponse",
    "HttpxHttpClient",
    "error_payload",
]
