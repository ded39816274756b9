"""
Value objects produced by the playlist and EPG parsers.
"""
from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone

from iptv_ingest.services.attribute_tokenizer import AttributeMap


@dataclass(frozen=True, slots=True)
class ChannelEntry:
    """One #EXTINF entry completed by its URL line."""
    extinf: str
    name: str
    url: str
    duration: float = -1
    tvg_id: str = ""
    tvg_name: str = ""
    logo_url: str = ""
    group: str = ""
    language: str = ""
    attributes: AttributeMap = field(default_factory=AttributeMap, hash=False)
    is_vod: bool = False

    @property
    def is_live(self) -> bool:
        return not self.is_vod

    def is_in_group(self, group_name: str | None) -> bool:
        if not group_name or not group_name.strip():
            return True
        return self.group.casefold() == group_name.casefold()

    def name_contains(self, term: str | None) -> bool:
        if not term or not term.strip():
            return True
        return term.casefold() in self.name.casefold()

    def __str__(self) -> str:
        return f"{self.name} ({self.url})"


@dataclass(slots=True)
class Playlist:
    """Parsed extended M3U playlist."""
    name: str
    entries: list[ChannelEntry] = field(default_factory=list)
    attributes: AttributeMap = field(default_factory=AttributeMap)
    source_id: str = ""
    header: str = "#EXTM3U"
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def channel_count(self) -> int:
        return len(self.entries)

    def channels_by_group(self, group_name: str | None) -> list[ChannelEntry]:
        """Entries whose group matches (case-insensitive); all entries for a blank group."""
        return [entry for entry in self.entries if entry.is_in_group(group_name)]

    def search(self, term: str | None) -> list[ChannelEntry]:
        """Entries whose display name or tvg-name contains the term."""
        if not term or not term.strip():
            return list(self.entries)
        needle = term.casefold()
        return [
            entry for entry in self.entries
            if needle in entry.name.casefold() or needle in entry.tvg_name.casefold()
        ]

    def groups(self) -> list[str]:
        """Distinct non-empty groups in file order"""
        seen: dict[str, None] = {}
        for entry in self.entries:
            if entry.group:
                seen.setdefault(entry.group, None)
        return list(seen)


@dataclass(frozen=True, slots=True)
class EpgChannel:
    """XMLTV <channel> element."""
    id: str
    display_name: str
    icon_url: str = ""


@dataclass(frozen=True, slots=True)
class EpgProgramme:
    """XMLTV <programme> element with times normalized to UTC."""
    channel_id: str
    start_time: datetime
    end_time: datetime
    title: str = ""
    description: str = ""
    category: str = ""
    language: str = ""
    actors: str = ""
    directors: str = ""
    episode: str = ""
    season_number: int | None = None
    episode_number: int | None = None
    year: int | None = None
    image_url: str = ""

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()


@dataclass(slots=True)
class EpgDocument:
    """Channels and programmes from one XMLTV document."""
    channels: list[EpgChannel] = field(default_factory=list)
    programmes: list[EpgProgramme] = field(default_factory=list)
    source_id: str = ""

    def __iter__(self) -> Iterator[list]:
        yield self.channels
        yield self.programmes


__all__ = ["ChannelEntry", "Playlist", "EpgChannel", "EpgProgramme", "EpgDocument"]
