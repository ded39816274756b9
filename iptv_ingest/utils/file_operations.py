"""
Fetch abstraction and file operation utilities

This module holds the only code that touches the network or the filesystem.
Parsers receive text produced here; the analyzer and loaders receive a
Fetcher instance from their caller.
"""
import logging
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Protocol, runtime_checkable
import asyncio

import aiofiles
import httpx

from iptv_ingest.config import settings
from iptv_ingest.errors import TransportError
from iptv_ingest.utils.logging_helpers import sanitize_url_for_logging


logger = logging.getLogger(__name__)

STREAM_CHUNK_SIZE = 64 * 1024

# InvalidURL is not an httpx.HTTPError subclass
REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


@runtime_checkable
class Fetcher(Protocol):
    """Caller-supplied I/O capability used by loaders and the stream analyzer"""

    async def fetch_text(self, url: str) -> str:
        """Return the decoded body of url, raising TransportError on failure"""
        ...

    async def fetch_status(self, url: str) -> int:
        """Return the status code of a lightweight existence probe"""
        ...

    def stream(self, url: str) -> AsyncIterator[bytes]:
        """Yield the body of url in chunks, raising TransportError on failure"""
        ...


class HttpFetcher:
    """
    httpx based Fetcher with exponential backoff retry logic

    Retries on transient network errors (timeouts, connection errors) and
    5xx responses. Does NOT retry on 4xx HTTP errors (client errors).
    A new client is opened per call so one instance can be shared freely.
    """

    def __init__(
        self,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_factor: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else settings.fetch_timeout_sec
        self.max_retries = max(1, max_retries if max_retries is not None else settings.fetch_max_retries)
        self.backoff_factor = backoff_factor if backoff_factor is not None else settings.fetch_backoff_factor
        self.user_agent = user_agent or settings.fetch_user_agent
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    async def fetch_text(self, url: str) -> str:
        response = await self._get_with_retry(url)
        return response.text

    async def fetch_status(self, url: str) -> int:
        """
        HEAD the URL; servers refusing HEAD get a one-byte ranged GET instead.

        Raises:
            TransportError: If the server cannot be reached
        """
        safe_url = sanitize_url_for_logging(url)
        try:
            async with self._client() as client:
                response = await client.head(url)
                if response.status_code in (405, 501):
                    logger.debug(f"HEAD not allowed for {safe_url}, retrying with ranged GET")
                    async with client.stream("GET", url, headers={"Range": "bytes=0-0"}) as ranged:
                        return ranged.status_code
                return response.status_code
        except REQUEST_ERRORS as e:
            raise TransportError(f"Probe of {safe_url} failed: {type(e).__name__}: {e}", url=url) from e

    async def stream(self, url: str) -> AsyncIterator[bytes]:
        safe_url = sanitize_url_for_logging(url)
        try:
            async with self._client() as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    async for chunk in response.aiter_bytes(STREAM_CHUNK_SIZE):
                        yield chunk
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"HTTP {e.response.status_code} while streaming {safe_url}",
                url=url,
                status_code=e.response.status_code,
            ) from e
        except REQUEST_ERRORS as e:
            raise TransportError(f"Streaming {safe_url} failed: {type(e).__name__}: {e}", url=url) from e

    async def _get_with_retry(self, url: str) -> httpx.Response:
        safe_url = sanitize_url_for_logging(url)
        logger.info(f"Fetching {safe_url}...")

        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                async with self._client() as client:
                    response = await client.get(url)
                    response.raise_for_status()
                    logger.debug(f"Fetched {len(response.content) / 1024:.1f} KB from {safe_url}")
                    return response

            except (httpx.TimeoutException, httpx.ConnectError) as e:
                # Transient network errors - retry
                last_error = e
                if attempt < self.max_retries - 1:
                    wait_time = self.backoff_factor ** attempt
                    logger.warning(
                        f"Fetch attempt {attempt + 1}/{self.max_retries} failed (transient error): {type(e).__name__}. "
                        f"Retrying in {wait_time:.1f}s..."
                    )
                    await asyncio.sleep(wait_time)
                else:
                    logger.error(f"Fetch failed after {self.max_retries} attempts (transient error)")

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                # HTTP errors - don't retry on 4xx (client error), retry on 5xx (server error)
                if 400 <= status < 500:
                    logger.error(f"HTTP {status} (client error) for {safe_url}")
                    raise TransportError(f"HTTP {status} fetching {safe_url}", url=url, status_code=status) from e

                last_error = e
                if attempt < self.max_retries - 1:
                    wait_time = self.backoff_factor ** attempt
                    logger.warning(
                        f"Fetch attempt {attempt + 1}/{self.max_retries} failed "
                        f"(HTTP {status} server error). "
                        f"Retrying in {wait_time:.1f}s..."
                    )
                    await asyncio.sleep(wait_time)
                else:
                    logger.error(f"Fetch failed after {self.max_retries} attempts (HTTP {status})")

            except REQUEST_ERRORS as e:
                raise TransportError(f"Fetching {safe_url} failed: {type(e).__name__}: {e}", url=url) from e

        status_code = last_error.response.status_code if isinstance(last_error, httpx.HTTPStatusError) else None
        raise TransportError(
            f"Failed to fetch {safe_url} after {self.max_retries} attempts: {last_error}",
            url=url,
            status_code=status_code,
        ) from last_error


async def read_text_file(file_path: Path | str, encoding: str = "utf-8") -> str:
    """
    Read a local text file without blocking the event loop

    Raises:
        TransportError: If the file cannot be read
    """
    try:
        async with aiofiles.open(file_path, "r", encoding=encoding, errors="replace") as f:
            return await f.read()
    except OSError as e:
        raise TransportError(f"Cannot read {file_path}: {e}", url=str(file_path)) from e


async def download_to_temp_file(fetcher: Fetcher, url: str, filename: str) -> Path:
    """
    Stream a URL into the system temp directory

    Args:
        fetcher: Fetcher providing the byte stream
        url: URL to download from
        filename: Name for the temporary file

    Returns:
        Path to downloaded temporary file

    Raises:
        TransportError: If the download fails (the partial file is removed)
    """
    # Use system temp directory (cross-platform)
    temp_file = Path(tempfile.gettempdir()) / filename
    size = 0

    try:
        async with aiofiles.open(temp_file, "wb") as f:
            async for chunk in fetcher.stream(url):
                await f.write(chunk)
                size += len(chunk)
    except BaseException:
        cleanup_temp_file(temp_file)
        raise

    logger.info(f"Downloaded {size / (1024 * 1024):.2f} MB to {temp_file}")
    return temp_file


def cleanup_temp_file(file_path: Path | None) -> bool:
    """
    Safely delete a temporary file

    Args:
        file_path: Path to file to delete

    Returns:
        True if deleted successfully, False otherwise
    """
    if not file_path or not file_path.exists():
        return False

    try:
        file_path.unlink()
        logger.debug(f"Cleaned up temporary file: {file_path}")
        return True
    except (OSError, PermissionError) as e:
        logger.warning(f"Failed to delete temporary file {file_path}: {e}")
        return False
