"""HTTP request sender.

This module wraps an ``httpx.AsyncClient`` with:
- bearer authentication from settings
- JSON request bodies and JSON/text response decoding
- mapping of error statuses and transport failures to fleet_models errors
- streaming responses for large downloads
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from fleet_models.errors import RequestError, TransportError

if TYPE_CHECKING:
    from fleet_models.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class ApiResponse:
    """Decoded response of a non-streaming request."""

    status_code: int
    body: Any
    headers: httpx.Headers = field(default_factory=httpx.Headers)


def decode_body(response: httpx.Response) -> Any:
    """Decode a response body as JSON when the server says it is JSON.

    Args:
        response: Response whose content has been read.

    Returns:
        Parsed JSON, text, or None for an empty body.
    """
    if not response.content:
        return None
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        return response.json()
    return response.text


def raise_for_status(response: httpx.Response) -> None:
    """Raise RequestError for an error status.

    Args:
        response: Response whose content has been read.

    Raises:
        RequestError: If the status code is 400 or above.
    """
    if response.status_code < 400:
        return
    raise RequestError(
        response.status_code,
        body=decode_body(response),
        method=response.request.method,
        url=str(response.request.url),
    )


class RequestSender:
    """Sends authenticated requests to the API and related services."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize RequestSender.

        Args:
            settings: Client settings (base URL, credentials, timeouts).
            client: HTTPX async client (creates one if not provided).
        """
        self.settings = settings
        self._manage_client = client is None
        self._client = client or httpx.AsyncClient(
            follow_redirects=True,
            timeout=settings.request_timeout,
        )

    def _headers(self) -> dict[str, str]:
        if self.settings.api_key is None:
            return {}
        return {"Authorization": f"Bearer {self.settings.api_key.get_secret_value()}"}

    def _build_url(self, url: str, base_url: str | None) -> str:
        if url.startswith(("http://", "https://")):
            return url
        base = (base_url or self.settings.api_url).rstrip("/")
        return f"{base}/{url.lstrip('/')}"

    async def send(
        self,
        method: str,
        url: str,
        base_url: str | None = None,
        body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> ApiResponse:
        """Send a request and decode the response.

        Args:
            method: HTTP method.
            url: Absolute URL, or path relative to base_url.
            base_url: Base URL (defaults to the API URL).
            body: JSON-serializable request body.
            params: Query string parameters.

        Returns:
            ApiResponse with status code, decoded body and headers.

        Raises:
            RequestError: If the server answers with an error status.
            TransportError: If the request times out or the network fails.
        """
        full_url = self._build_url(url, base_url)
        logger.debug("%s %s", method, full_url)

        try:
            response = await self._client.request(
                method,
                full_url,
                json=body,
                params=params,
                headers=self._headers(),
            )
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Timeout requesting {method} {full_url}",
                code="timeout",
            ) from e
        except httpx.RequestError as e:
            raise TransportError(
                f"Network error requesting {method} {full_url}: {e}",
                code="network_error",
            ) from e

        raise_for_status(response)
        return ApiResponse(
            status_code=response.status_code,
            body=decode_body(response),
            headers=response.headers,
        )

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        url: str,
        base_url: str | None = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """Open a streaming response.

        The status is checked before the response is yielded, so error bodies
        are read eagerly while successful bodies stay unread.

        Args:
            method: HTTP method.
            url: Absolute URL, or path relative to base_url.
            base_url: Base URL (defaults to the API URL).
            params: Query string parameters.
            timeout: Timeout override in seconds.

        Yields:
            Open httpx.Response.

        Raises:
            RequestError: If the server answers with an error status.
            TransportError: If the request times out or the network fails.
        """
        full_url = self._build_url(url, base_url)
        logger.debug("%s %s (stream)", method, full_url)

        try:
            async with self._client.stream(
                method,
                full_url,
                params=params,
                headers=self._headers(),
                timeout=timeout or self.settings.download_timeout,
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise_for_status(response)
                yield response
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Timeout streaming {method} {full_url}",
                code="timeout",
            ) from e
        except httpx.RequestError as e:
            raise TransportError(
                f"Network error streaming {method} {full_url}: {e}",
                code="network_error",
            ) from e

    async def aclose(self) -> None:
        """Close the underlying client if this sender created it."""
        if self._manage_client:
            await self._client.aclose()


__all__ = ["ApiResponse", "RequestSender", "decode_body", "raise_for_status"]
