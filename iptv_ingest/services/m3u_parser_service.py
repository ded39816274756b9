"""
Extended M3U playlist parser.

Turns raw playlist text into a Playlist of ChannelEntry objects. Pure
function over its input; fetching the text is the caller's job.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import urlsplit

from iptv_ingest.config import settings
from iptv_ingest.errors import EntryError, FormatError
from iptv_ingest.services.attribute_tokenizer import AttributeMap, tokenize_attributes
from iptv_ingest.services.parse_types import ChannelEntry, Playlist
from iptv_ingest.utils.logging_helpers import log_parse_summary, sanitize_url_for_logging

logger = logging.getLogger(__name__)

HEADER = "#EXTM3U"
EXTINF = "#EXTINF"

EXTINF_PATTERN = re.compile(r"^#EXTINF:\s*([-+]?\d*\.?\d+)?\s*(.*)$", re.IGNORECASE)
VOD_EXTENSIONS = (".mp4", ".mkv", ".avi")
VOD_GROUP_MARKERS = ("vod", "movie")


@dataclass(slots=True)
class _PendingEntry:
    extinf: str
    name: str
    duration: float
    attributes: AttributeMap


def parse_m3u(text: str, source_id: str = "") -> Playlist:
    """
    Parse extended M3U playlist text

    Args:
        text: Playlist content
        source_id: URL or path the text came from (for logging and Playlist.source_id)

    Returns:
        Playlist with entries in file order

    Raises:
        FormatError: If the content does not start with #EXTM3U
    """
    content = text.lstrip("\ufeff").lstrip()
    if not content.startswith(HEADER):
        source = sanitize_url_for_logging(source_id) if source_id else "<inline>"
        raise FormatError(f"Invalid M3U format in {source}: content does not start with {HEADER}")

    lines = content.splitlines()
    playlist = Playlist(name=settings.default_playlist_name, source_id=source_id)
    tokenize_attributes(lines[0][len(HEADER):], into=playlist.attributes)
    playlist.name = _playlist_name(playlist.attributes)

    pending: _PendingEntry | None = None
    dropped = 0

    for raw_line in lines[1:]:
        line = raw_line.strip()
        if not line:
            continue

        if line.upper().startswith(EXTINF):
            if pending is not None:
                logger.debug("Dropping EXTINF without URL: %s", pending.extinf)
                dropped += 1
            try:
                pending = parse_extinf_line(line)
            except EntryError as e:
                logger.warning("Skipping malformed EXTINF line: %s", e)
                pending = None
                dropped += 1
            continue

        if line.startswith("#") or pending is None:
            continue

        playlist.entries.append(_complete_entry(pending, line))
        pending = None

    if pending is not None:
        logger.debug("Dropping EXTINF at end of file without URL: %s", pending.extinf)
        dropped += 1

    log_parse_summary(logger, "channels", source_id, len(playlist.entries), dropped)
    return playlist


def parse_extinf_line(line: str) -> _PendingEntry:
    """
    Decode one #EXTINF line into a pending entry

    Raises:
        EntryError: If the line is not an EXTINF line
    """
    match = EXTINF_PATTERN.match(line)
    if not match:
        raise EntryError(f"Not an EXTINF line: {line!r}")

    duration = parse_duration(match.group(1))
    attribute_part, name = split_extinf_name(match.group(2))
    attributes = tokenize_attributes(attribute_part)

    return _PendingEntry(extinf=line, name=name.strip(), duration=duration, attributes=attributes)


def parse_duration(value: str | None) -> float:
    """Parse the EXTINF duration token, -1 when absent or invalid"""
    if not value:
        return -1
    try:
        return float(value)
    except ValueError:
        return -1


def split_extinf_name(rest: str) -> tuple[str, str]:
    """
    Split the text after the duration into (attributes, display name)

    The name follows the last comma that is not inside a quoted value.
    Without such a comma the whole text is treated as attributes.
    """
    in_quotes = False
    split_index = -1
    for index, char in enumerate(rest):
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            split_index = index

    if split_index == -1:
        return rest, ""
    return rest[:split_index], rest[split_index + 1:]


def is_vod_entry(url: str, group: str) -> bool:
    """VOD when the URL looks like a media file or movie path, or the group says so"""
    path = urlsplit(url).path.lower()
    if path.endswith(VOD_EXTENSIONS) or "/movie/" in path:
        return True
    group_folded = group.casefold()
    return any(marker in group_folded for marker in VOD_GROUP_MARKERS)


def _complete_entry(pending: _PendingEntry, url: str) -> ChannelEntry:
    attributes = pending.attributes
    group = attributes.get("group-title", "")
    tvg_name = attributes.get("tvg-name", "")

    return ChannelEntry(
        extinf=pending.extinf,
        name=pending.name or tvg_name,
        url=url,
        duration=pending.duration,
        tvg_id=attributes.get("tvg-id", ""),
        tvg_name=tvg_name,
        logo_url=attributes.get("tvg-logo", ""),
        group=group,
        language=attributes.get("tvg-language", ""),
        attributes=attributes,
        is_vod=is_vod_entry(url, group),
    )


def _playlist_name(attributes: AttributeMap) -> str:
    epg_url = attributes.get("x-tvg-url", "").strip()
    if epg_url:
        # x-tvg-url may carry several comma separated guides
        first = epg_url.split(",")[0].strip()
        stem = PurePosixPath(urlsplit(first).path).stem
        if stem:
            return stem
    return settings.default_playlist_name
