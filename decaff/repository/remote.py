"""Tarball download over HTTP."""

from __future__ import annotations

import logging

import httpx

from decaff.errors import (
    RequestBodyFailedError,
    RequestFailedError,
    RequestFailedWithCodeError,
)

logger = logging.getLogger(__name__)


class TarballFetcher:
    """Downloads repository tarballs. A failed download is not retried."""

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, url: str) -> bytes:
        """Fetch the tarball at `url` and read it into memory.

        Raises:
            RequestFailedError: If the request could not be sent.
            RequestFailedWithCodeError: If the host answered with an error status.
            RequestBodyFailedError: If the response body could not be read.
        """
        logger.info(f"Downloading {url}")

        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            try:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise RequestFailedWithCodeError(response.status_code, url)
                    try:
                        contents = await response.aread()
                    except httpx.HTTPError as e:
                        raise RequestBodyFailedError(url) from e
            except httpx.HTTPError as e:
                raise RequestFailedError(url) from e

        logger.debug(f"Downloaded {len(contents)} bytes from {url}")
        return contents
