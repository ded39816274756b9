"""
Source Loader Service

Fetches playlist and EPG sources through a caller-supplied Fetcher (or from
local files / open byte streams) and hands the content to the pure parsers.
Transport failures here are fatal and propagate to the caller.
"""
import logging
import asyncio
from collections.abc import AsyncIterable
from datetime import datetime
from pathlib import Path
from uuid import uuid4

from iptv_ingest.config import settings
from iptv_ingest.errors import TransportError
from iptv_ingest.services.m3u_parser_service import parse_m3u
from iptv_ingest.services.parse_types import EpgDocument, Playlist
from iptv_ingest.services.xmltv_parser_service import parse_xmltv, parse_xmltv_file
from iptv_ingest.utils.file_operations import (
    Fetcher,
    cleanup_temp_file,
    download_to_temp_file,
    read_text_file,
)
from iptv_ingest.utils.logging_helpers import log_section_end, log_section_start, sanitize_url_for_logging


logger = logging.getLogger(__name__)


async def load_playlist_from_url(fetcher: Fetcher, url: str) -> Playlist:
    """
    Fetch and parse an M3U playlist

    Raises:
        TransportError: If the playlist cannot be fetched
        FormatError: If the content is not an extended M3U playlist
    """
    safe_url = sanitize_url_for_logging(url)
    log_section_start(logger, f"playlist {safe_url}")
    content = await fetcher.fetch_text(url)
    playlist = parse_m3u(content, source_id=url)
    log_section_end(logger, f"playlist {safe_url}")
    return playlist


async def load_playlist_from_file(file_path: Path | str) -> Playlist:
    """
    Read and parse a local M3U playlist

    Raises:
        TransportError: If the file cannot be read
        FormatError: If the content is not an extended M3U playlist
    """
    logger.info(f"Parsing M3U from file: {file_path}")
    content = await read_text_file(file_path)
    return parse_m3u(content, source_id=str(file_path))


async def load_epg_from_url(
    fetcher: Fetcher,
    url: str,
    time_from: datetime | None = None,
    time_to: datetime | None = None,
    *,
    parse_timeout_seconds: int | None = None
) -> EpgDocument:
    """
    Download an XMLTV source to a temporary file and parse it

    The temporary file is removed on every exit path.

    Raises:
        TransportError: If the download fails
        FormatError: If the document is not parseable XML
        ValueError: If parsing times out
    """
    safe_url = sanitize_url_for_logging(url)
    temp_file = None
    try:
        logger.info(f"  [EPG] Starting download: {safe_url}")
        temp_file = await download_to_temp_file(fetcher, url, f"epg_source_{uuid4().hex}.xml")
        logger.debug(f"  [EPG] File size: {temp_file.stat().st_size / 1024 / 1024:.2f} MB")

        document = await parse_xmltv_async(
            temp_file,
            time_from,
            time_to,
            parse_timeout_seconds=parse_timeout_seconds
        )
        document.source_id = url
        return document

    finally:
        if temp_file:
            logger.debug("  [EPG] Cleaning up temporary file...")
            if cleanup_temp_file(temp_file):
                logger.debug("  [EPG] Cleanup successful")
            else:
                logger.debug("  [EPG] Cleanup skipped (file not found)")


async def load_epg_from_file(
    file_path: Path | str,
    time_from: datetime | None = None,
    time_to: datetime | None = None,
    *,
    parse_timeout_seconds: int | None = None
) -> EpgDocument:
    """Parse a local XMLTV file off the event loop"""
    logger.info(f"Parsing XMLTV from file: {file_path}")
    if not Path(file_path).is_file():
        raise TransportError(f"XMLTV file not found: {file_path}", url=str(file_path))
    return await parse_xmltv_async(file_path, time_from, time_to, parse_timeout_seconds=parse_timeout_seconds)


async def load_epg_from_stream(
    stream: AsyncIterable[bytes],
    source_id: str = "<stream>",
    time_from: datetime | None = None,
    time_to: datetime | None = None
) -> EpgDocument:
    """Read an open byte stream to the end and parse it as XMLTV"""
    logger.info(f"Parsing XMLTV from stream: {source_id}")
    chunks = [chunk async for chunk in stream]
    data = b"".join(chunks)
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, parse_xmltv, data, source_id, time_from, time_to)


async def parse_xmltv_async(
    file_path: Path | str,
    time_from: datetime | None = None,
    time_to: datetime | None = None,
    *,
    parse_timeout_seconds: int | None = None
) -> EpgDocument:
    """
    Parse XMLTV file asynchronously with timeout protection.

    File parsing is offloaded to thread pool to avoid blocking event loop.
    The timeout prevents malformed or massive files from hanging.

    Args:
        file_path: Path to XMLTV file (Path or str)
        time_from: Start of time window
        time_to: End of time window

    Returns:
        EpgDocument with channels and programmes

    Keyword Args:
        parse_timeout_seconds: Timeout in seconds for parsing (0 disables,
            None uses settings.epg_parse_timeout_sec)

    Raises:
        ValueError: If parsing times out
        FormatError: If the document is not parseable XML
    """
    if isinstance(file_path, str):
        file_path = Path(file_path)

    if parse_timeout_seconds is None:
        parse_timeout_seconds = settings.epg_parse_timeout_sec
    effective_timeout = parse_timeout_seconds if parse_timeout_seconds > 0 else None
    timeout_display = f"{effective_timeout}s" if effective_timeout else "disabled"

    logger.info(f"Parsing XMLTV file: {file_path}")
    logger.debug("Offloading XML parsing to thread pool executor (timeout: %s)...", timeout_display)

    loop = asyncio.get_running_loop()
    parse_task = loop.run_in_executor(
        None,
        parse_xmltv_file,
        str(file_path),
        time_from,
        time_to
    )
    try:
        if effective_timeout:
            document = await asyncio.wait_for(parse_task, timeout=effective_timeout)
        else:
            document = await parse_task
    except asyncio.TimeoutError as e:
        logger.error(
            "XML parsing timed out after %s for %s",
            timeout_display,
            file_path
        )
        raise ValueError("XML parsing timed out - file may be too large or malformed") from e

    logger.info(f"XML parsing completed: {len(document.channels)} channels, {len(document.programmes)} programmes")
    if not document.channels:
        logger.warning("No channels found in XMLTV file")
    if not document.programmes:
        logger.warning("No programmes found in XMLTV file (possibly outside time window)")

    return document
