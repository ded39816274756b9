import pytest

from iptv_ingest.schemas import StreamType
from iptv_ingest.services.manifest_rules import (
    dash_codecs,
    dash_duration,
    dash_resolution,
    extract_dash_info,
    extract_hls_info,
    hls_bandwidth,
    hls_codecs,
    hls_is_live,
    hls_resolution,
    hls_total_duration,
    parse_iso8601_duration,
)


MASTER_PLAYLIST = """#EXTM3U
#EXT-X-STREAM-INF:AVERAGE-BANDWIDTH=1000000,BANDWIDTH=1280000,RESOLUTION=1280x720,CODECS="avc1.4d401f,mp4a.40.2"
720p.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=2560000,RESOLUTION=1920x1080
1080p.m3u8
"""

VOD_MEDIA_PLAYLIST = """#EXTM3U
#EXT-X-TARGETDURATION:10
#EXTINF:10.0,
seg0.ts
#EXTINF:9.5,
seg1.ts
#EXT-X-ENDLIST
"""

LIVE_MPD = """<?xml version="1.0"?>
<MPD xmlns="urn:mpeg:dash:schema:mpd:2011" type="dynamic" minimumUpdatePeriod="PT2S">
  <Period>
    <AdaptationSet mimeType="video/mp4">
      <Representation id="v1" bandwidth="3000000" width="1920" height="1080" codecs="avc1.640028"/>
    </AdaptationSet>
    <AdaptationSet mimeType="audio/mp4">
      <Representation id="a1" bandwidth="128000" codecs="mp4a.40.2"/>
    </AdaptationSet>
  </Period>
</MPD>
"""

STATIC_MPD = """<MPD type="static" mediaPresentationDuration="PT1H2M3.5S">
  <Period><AdaptationSet width="640" height="360"><Representation bandwidth="800000"/></AdaptationSet></Period>
</MPD>
"""


def test_hls_bandwidth_and_resolution():
    assert hls_bandwidth(MASTER_PLAYLIST) == 1280000
    assert hls_resolution(MASTER_PLAYLIST) == "1280x720"
    assert hls_codecs(MASTER_PLAYLIST) == ("avc1.4d401f", "mp4a.40.2")


def test_hls_missing_tags():
    assert hls_bandwidth("#EXTM3U\n") == 0
    assert hls_resolution("#EXTM3U\n") == ""
    assert hls_codecs('#EXT-X-STREAM-INF:CODECS="avc1"') == ("avc1", "")


def test_hls_liveness():
    assert hls_is_live(MASTER_PLAYLIST)
    assert not hls_is_live(VOD_MEDIA_PLAYLIST)


def test_hls_total_duration():
    assert hls_total_duration(VOD_MEDIA_PLAYLIST) == pytest.approx(19.5)
    assert hls_total_duration(MASTER_PLAYLIST) is None


def test_extract_hls_info():
    live = extract_hls_info(MASTER_PLAYLIST)
    assert live.stream_type is StreamType.HLS
    assert live.is_live
    assert live.duration is None
    assert live.video_codec == "avc1.4d401f"

    vod = extract_hls_info(VOD_MEDIA_PLAYLIST)
    assert not vod.is_live
    assert vod.duration == pytest.approx(19.5)


@pytest.mark.parametrize("value, expected", [
    ("PT1H2M3.5S", 3723.5),
    ("PT30S", 30),
    ("PT5M", 300),
    ("P1DT2H", 93600),
    ("P0D", 0),
])
def test_parse_iso8601_duration(value, expected):
    assert parse_iso8601_duration(value) == pytest.approx(expected)


def test_parse_iso8601_duration_rejects_garbage():
    with pytest.raises(ValueError):
        parse_iso8601_duration("1 hour")


def test_dash_rules():
    assert dash_resolution(LIVE_MPD) == "1920x1080"
    assert dash_codecs(LIVE_MPD) == ("avc1.640028", "mp4a.40.2")
    assert dash_codecs('<Representation codecs="avc1,mp4a.40.2"/>') == ("avc1", "mp4a.40.2")
    assert dash_duration(STATIC_MPD) == pytest.approx(3723.5)
    assert dash_duration(LIVE_MPD) is None


def test_extract_dash_info():
    live = extract_dash_info(LIVE_MPD)
    assert live.stream_type is StreamType.DASH
    assert live.is_live
    assert live.bitrate == 3000000
    assert live.duration is None

    vod = extract_dash_info(STATIC_MPD)
    assert not vod.is_live
    assert vod.resolution == "640x360"
    assert vod.bitrate == 800000
    assert vod.duration == pytest.approx(3723.5)
