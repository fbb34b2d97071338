"""Requests against the OS image maker service."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import httpx

from fleet_models.transport.request import ApiResponse, RequestSender

T = TypeVar("T")

IMAGE_MAKER_API_PREFIX = "/api/v1"


class ImageMakerClient:
    """Sends requests to ``{image_maker_url}/api/v1`` through a RequestSender."""

    def __init__(self, request: RequestSender, image_maker_url: str) -> None:
        self._request = request
        self.base_url = f"{image_maker_url.rstrip('/')}{IMAGE_MAKER_API_PREFIX}"

    async def request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> ApiResponse:
        """Send a request to the image maker."""
        return await self._request.send(
            method, url, base_url=self.base_url, params=params
        )

    async def get(
        self,
        url: str,
        post_process: Callable[[Any], T],
        params: dict[str, Any] | None = None,
    ) -> T:
        """GET an endpoint and post-process its decoded body.

        Args:
            url: Path relative to the image maker API.
            post_process: Transformation applied to the response body.
            params: Query string parameters.

        Returns:
            Post-processed body.
        """
        response = await self.request("GET", url, params=params)
        return post_process(response.body)

    @asynccontextmanager
    async def stream(
        self,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """Open a streaming GET against the image maker."""
        async with self._request.stream(
            "GET", url, base_url=self.base_url, params=params
        ) as response:
            yield response


__all__ = ["IMAGE_MAKER_API_PREFIX", "ImageMakerClient"]
