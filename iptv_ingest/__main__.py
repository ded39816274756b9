"""
Command line entry point: python -m iptv_ingest <command> ...

Every command prints its result as JSON on stdout.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from iptv_ingest.config import setup_logging
from iptv_ingest.dependencies import get_service_locator
from iptv_ingest.errors import IngestError
from iptv_ingest.services.source_loader_service import (
    load_epg_from_file,
    load_epg_from_url,
    load_playlist_from_file,
    load_playlist_from_url,
)
from iptv_ingest.services.stream_analyzer_service import StreamAnalyzer
from iptv_ingest.utils.file_operations import Fetcher
from iptv_ingest.utils.xmltv_time import as_utc


def _is_url(source: str) -> bool:
    return "://" in source


def _json_default(value):
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _print_json(payload) -> None:
    json.dump(payload, sys.stdout, default=_json_default, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


async def cmd_playlist(source: str, group: str | None, search: str | None) -> dict:
    if _is_url(source):
        fetcher = get_service_locator().get(Fetcher)
        playlist = await load_playlist_from_url(fetcher, source)
    else:
        playlist = await load_playlist_from_file(Path(source))

    entries = playlist.channels_by_group(group)
    if search:
        matches = {id(entry) for entry in playlist.search(search)}
        entries = [entry for entry in entries if id(entry) in matches]

    return {
        "name": playlist.name,
        "source_id": playlist.source_id,
        "attributes": playlist.attributes,
        "groups": playlist.groups(),
        "channel_count": playlist.channel_count,
        "entries": entries,
    }


async def cmd_epg(source: str, time_from: datetime | None, time_to: datetime | None) -> dict:
    if _is_url(source):
        fetcher = get_service_locator().get(Fetcher)
        document = await load_epg_from_url(fetcher, source, time_from, time_to)
    else:
        document = await load_epg_from_file(Path(source), time_from, time_to)

    return {
        "source_id": document.source_id,
        "channels": document.channels,
        "programmes": document.programmes,
    }


async def cmd_analyze(url: str) -> dict:
    analyzer = get_service_locator().get(StreamAnalyzer)
    info = await analyzer.analyze(url)
    return info.model_dump(mode="json")


async def cmd_available(url: str) -> dict:
    analyzer = get_service_locator().get(StreamAnalyzer)
    return {"url": url, "available": await analyzer.is_available(url)}


async def cmd_rewrite(url: str) -> str:
    fetcher = get_service_locator().get(Fetcher)
    analyzer = get_service_locator().get(StreamAnalyzer)
    manifest = await fetcher.fetch_text(url)
    return analyzer.rewrite_for_proxy(manifest, url)


def _parse_datetime(value: str) -> datetime:
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid ISO datetime: {value!r}") from e


def build_parser() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("--log-level", default=None, help="Override IPTV_LOG_LEVEL")

    ap = argparse.ArgumentParser(prog="iptv-ingest", description="IPTV playlist, EPG and stream toolbox")
    sub = ap.add_subparsers(dest="cmd", required=True)

    sp_playlist = sub.add_parser("playlist", parents=[parent], help="Parse an M3U playlist (URL or file)")
    sp_playlist.add_argument("source")
    sp_playlist.add_argument("--group", "-g", default=None, help="Only entries of this group")
    sp_playlist.add_argument("--search", "-s", default=None, help="Only entries whose name contains this term")

    sp_epg = sub.add_parser("epg", parents=[parent], help="Parse an XMLTV guide (URL or file)")
    sp_epg.add_argument("source")
    sp_epg.add_argument("--from", dest="time_from", type=_parse_datetime, default=None)
    sp_epg.add_argument("--to", dest="time_to", type=_parse_datetime, default=None)

    sp_analyze = sub.add_parser("analyze", parents=[parent], help="Extract technical stream metadata")
    sp_analyze.add_argument("url")

    sp_available = sub.add_parser("available", parents=[parent], help="Check that a stream answers")
    sp_available.add_argument("url")

    sp_rewrite = sub.add_parser("rewrite", parents=[parent], help="Print a manifest with absolute URIs")
    sp_rewrite.add_argument("url")

    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        if args.cmd == "playlist":
            _print_json(asyncio.run(cmd_playlist(args.source, args.group, args.search)))
        elif args.cmd == "epg":
            _print_json(asyncio.run(cmd_epg(args.source, args.time_from, args.time_to)))
        elif args.cmd == "analyze":
            _print_json(asyncio.run(cmd_analyze(args.url)))
        elif args.cmd == "available":
            _print_json(asyncio.run(cmd_available(args.url)))
        elif args.cmd == "rewrite":
            sys.stdout.write(asyncio.run(cmd_rewrite(args.url)))
    except (IngestError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
