"""
IPTV ingest core: M3U playlists, XMLTV guides and HLS/DASH manifests.
"""
__version__ = "0.1.0"
