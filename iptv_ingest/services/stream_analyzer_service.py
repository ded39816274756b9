"""
Stream Analyzer Service

Classifies stream URLs, extracts technical metadata from HLS/DASH manifests
or a media probe, checks availability and serves the proxy path. Analysis
never fails the caller; only passthrough propagates transport errors.
"""
from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Protocol
from urllib.parse import urlsplit

from iptv_ingest.errors import IngestError
from iptv_ingest.schemas import StreamManifestInfo, StreamType
from iptv_ingest.services.manifest_rewriter import rewrite_for_proxy
from iptv_ingest.services.manifest_rules import extract_dash_info, extract_hls_info
from iptv_ingest.services.media_probe import MediaProbe
from iptv_ingest.utils.file_operations import Fetcher
from iptv_ingest.utils.logging_helpers import sanitize_url_for_logging


logger = logging.getLogger(__name__)

DIRECT_EXTENSIONS = frozenset({
    ".mp4", ".mkv", ".avi", ".mov", ".webm", ".ts", ".flv", ".m4v", ".wmv", ".mpg", ".mpeg",
})

CONTENT_TYPES = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".mpd": "application/dash+xml",
    ".mp4": "video/mp4",
    ".ts": "video/mp2t",
    ".webm": "video/webm",
    ".mkv": "video/x-matroska",
    ".avi": "video/x-msvideo",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class ByteSink(Protocol):
    async def write(self, data: bytes) -> object:
        ...


def url_extension(url: str) -> str:
    """Lower-cased extension of the URL path, query and fragment ignored; empty for unparsable URLs"""
    try:
        path = urlsplit(url).path
    except ValueError:
        logger.debug(f"Cannot split URL {url!r}")
        return ""
    return PurePosixPath(path).suffix.lower()


def classify_stream_type(url: str) -> StreamType:
    extension = url_extension(url)
    if extension == ".m3u8":
        return StreamType.HLS
    if extension == ".mpd":
        return StreamType.DASH
    if extension in DIRECT_EXTENSIONS:
        return StreamType.DIRECT
    return StreamType.UNKNOWN


def content_type_for(url: str) -> str:
    return CONTENT_TYPES.get(url_extension(url), DEFAULT_CONTENT_TYPE)


class StreamAnalyzer:
    """Stateless stream inspection on top of an injected Fetcher and MediaProbe"""

    def __init__(self, fetcher: Fetcher, probe: MediaProbe | None = None) -> None:
        self.fetcher = fetcher
        self.probe = probe

    async def is_available(self, url: str) -> bool:
        """True when a lightweight probe answers 2xx; never raises"""
        safe_url = sanitize_url_for_logging(url)
        logger.info(f"Checking stream availability: {safe_url}")
        try:
            status = await self.fetcher.fetch_status(url)
        except Exception as e:
            logger.warning(f"Stream availability check failed for {safe_url}: {e}")
            return False
        return 200 <= status < 300

    async def analyze(self, url: str) -> StreamManifestInfo:
        """Technical metadata for url; degrades to StreamManifestInfo.unknown() on failure"""
        safe_url = sanitize_url_for_logging(url)
        try:
            stream_type = classify_stream_type(url)
        except Exception as e:
            logger.error(f"Cannot classify stream {safe_url}: {e}")
            return StreamManifestInfo.unknown()
        logger.info(f"Analyzing stream {safe_url} (type: {stream_type.value})")

        if stream_type in (StreamType.HLS, StreamType.DASH):
            return await self._analyze_manifest(url, stream_type)
        if stream_type is StreamType.DIRECT:
            return await self._analyze_direct(url)
        return StreamManifestInfo.unknown()

    async def _analyze_manifest(self, url: str, stream_type: StreamType) -> StreamManifestInfo:
        safe_url = sanitize_url_for_logging(url)
        try:
            content = await self.fetcher.fetch_text(url)
            if stream_type is StreamType.HLS:
                return extract_hls_info(content)
            return extract_dash_info(content)
        except Exception as e:
            logger.error(f"Error getting stream info for {safe_url}: {e}", exc_info=not isinstance(e, IngestError))
            return StreamManifestInfo.unknown()

    async def _analyze_direct(self, url: str) -> StreamManifestInfo:
        if self.probe is None:
            logger.debug("No media probe configured, returning container type only")
            return StreamManifestInfo(stream_type=StreamType.DIRECT, is_live=False)

        try:
            media = await self.probe.probe(url)
        except Exception as e:
            logger.warning(f"Media probe failed for {sanitize_url_for_logging(url)}: {e}")
            return StreamManifestInfo(stream_type=StreamType.DIRECT, is_live=False)

        return StreamManifestInfo(
            stream_type=StreamType.DIRECT,
            resolution=media.resolution,
            bitrate=media.bitrate,
            video_codec=media.video_codec,
            audio_codec=media.audio_codec,
            duration=media.duration,
            is_live=False,
        )

    def rewrite_for_proxy(self, manifest_text: str, manifest_url: str) -> str:
        return rewrite_for_proxy(manifest_text, manifest_url)

    async def stream_passthrough(self, url: str, sink: ByteSink) -> int:
        """
        Copy the media bytes of url into sink verbatim

        Returns:
            Number of bytes written

        Raises:
            TransportError: If fetching fails
        """
        logger.info(f"Proxying stream: {sanitize_url_for_logging(url)}")
        written = 0
        async for chunk in self.fetcher.stream(url):
            await sink.write(chunk)
            written += len(chunk)
        return written

    async def proxy(self, url: str, sink: ByteSink) -> str:
        """
        Serve url through sink: manifests are rewritten, other media passed through

        Returns:
            Content type for the response

        Raises:
            TransportError: If fetching fails
            ValueError: If url is not absolute
        """
        content_type = content_type_for(url)
        if classify_stream_type(url) in (StreamType.HLS, StreamType.DASH):
            manifest = await self.fetcher.fetch_text(url)
            await sink.write(rewrite_for_proxy(manifest, url).encode("utf-8"))
        else:
            await self.stream_passthrough(url, sink)
        return content_type


__all__ = [
    "ByteSink",
    "StreamAnalyzer",
    "classify_stream_type",
    "content_type_for",
    "url_extension",
]
