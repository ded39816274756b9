"""
Services package for the IPTV ingest core

This package contains the parsers, the stream analyzer and the source loaders.
"""
from iptv_ingest.services.attribute_tokenizer import AttributeMap, tokenize_attributes
from iptv_ingest.services.m3u_parser_service import parse_m3u
from iptv_ingest.services.xmltv_parser_service import parse_xmltv
from iptv_ingest.services.manifest_rewriter import rewrite_for_proxy
from iptv_ingest.services.stream_analyzer_service import StreamAnalyzer, classify_stream_type
from iptv_ingest.services.media_probe import FfprobeMediaProbe, MediaProbe
from iptv_ingest.services.source_loader_service import (
    load_epg_from_file,
    load_epg_from_stream,
    load_epg_from_url,
    load_playlist_from_file,
    load_playlist_from_url,
)

__all__ = [
    'AttributeMap',
    'tokenize_attributes',
    'parse_m3u',
    'parse_xmltv',
    'rewrite_for_proxy',
    'StreamAnalyzer',
    'classify_stream_type',
    'FfprobeMediaProbe',
    'MediaProbe',
    'load_epg_from_file',
    'load_epg_from_stream',
    'load_epg_from_url',
    'load_playlist_from_file',
    'load_playlist_from_url',
]
