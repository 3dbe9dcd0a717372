"""Tests for tarball downloads."""

from __future__ import annotations

import httpx
import pytest

from decaff.errors import (
    FetchError,
    RequestBodyFailedError,
    RequestFailedError,
    RequestFailedWithCodeError,
)
from decaff.repository.remote import TarballFetcher

URL = "https://github.com/foo/bar/archive/abc1234.tar.gz"


def fetcher_for(handler) -> TarballFetcher:
    return TarballFetcher(transport=httpx.MockTransport(handler))


class TestTarballFetcher:
    """Tests for fetching tarballs and mapping failures."""

    @pytest.mark.asyncio
    async def test_fetch(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == URL
            return httpx.Response(200, content=b"tarball")

        assert await fetcher_for(handler).fetch(URL) == b"tarball"

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        codeload = "https://codeload.github.com/foo/bar/tar.gz/abc1234"

        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == URL:
                return httpx.Response(302, headers={"Location": codeload})
            return httpx.Response(200, content=b"redirected")

        assert await fetcher_for(handler).fetch(URL) == b"redirected"

    @pytest.mark.asyncio
    async def test_not_found(self):
        fetcher = fetcher_for(lambda request: httpx.Response(404))

        with pytest.raises(RequestFailedWithCodeError) as exc_info:
            await fetcher.fetch(URL)

        error = exc_info.value
        assert error.code == 404
        assert error.not_found
        assert "The requested branch, tag or commit was not found." in error.message
        assert URL in error.message

    @pytest.mark.asyncio
    async def test_server_error(self):
        fetcher = fetcher_for(lambda request: httpx.Response(500))

        with pytest.raises(RequestFailedWithCodeError) as exc_info:
            await fetcher.fetch(URL)

        assert exc_info.value.code == 500
        assert not exc_info.value.not_found
        assert "not found" not in exc_info.value.message

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RequestFailedError) as exc_info:
            await fetcher_for(handler).fetch(URL)

        assert exc_info.value.url == URL
        assert isinstance(exc_info.value, FetchError)

    @pytest.mark.asyncio
    async def test_body_error(self):
        class BrokenStream(httpx.AsyncByteStream):
            async def __aiter__(self):
                raise httpx.ReadError("connection reset")
                yield b""

        fetcher = fetcher_for(lambda request: httpx.Response(200, stream=BrokenStream()))

        with pytest.raises(RequestBodyFailedError):
            await fetcher.fetch(URL)
