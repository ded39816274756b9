import json

from iptv_ingest.__main__ import main
from iptv_ingest.dependencies import get_service_locator
from iptv_ingest.utils.file_operations import Fetcher

from conftest import FRANCE_PLAYLIST, FRANCE_XMLTV, FakeFetcher


def test_playlist_from_file(tmp_path, capsys):
    path = tmp_path / "list.m3u"
    path.write_text(FRANCE_PLAYLIST, encoding="utf-8")

    assert main(["playlist", str(path), "--group", "France"]) == 0

    output = json.loads(capsys.readouterr().out)
    assert output["name"] == "guide"
    assert output["channel_count"] == 3
    assert [e["name"] for e in output["entries"]] == ["France 2", "France 3"]
    assert output["entries"][0]["attributes"]["tvg-id"] == "france2.fr"


def test_epg_from_file(tmp_path, capsys):
    path = tmp_path / "guide.xml"
    path.write_text(FRANCE_XMLTV, encoding="utf-8")

    assert main(["epg", str(path)]) == 0

    output = json.loads(capsys.readouterr().out)
    assert [c["id"] for c in output["channels"]] == ["france2.fr", "france3.fr"]
    assert output["programmes"][0]["start_time"] == "2023-01-01T11:00:00+00:00"


def test_analyze_uses_registered_fetcher(capsys):
    url = "http://h/live/index.m3u8"
    get_service_locator().register_singleton(
        Fetcher, FakeFetcher(pages={url: "#EXTM3U\n#EXT-X-STREAM-INF:BANDWIDTH=1000\nlow.m3u8\n"})
    )

    assert main(["analyze", url]) == 0

    output = json.loads(capsys.readouterr().out)
    assert output["stream_type"] == "HLS"
    assert output["bitrate"] == 1000


def test_rewrite(capsys):
    url = "http://h/live/index.m3u8"
    get_service_locator().register_singleton(Fetcher, FakeFetcher(pages={url: "#EXTM3U\nseg.ts\n"}))

    assert main(["rewrite", url]) == 0

    assert capsys.readouterr().out == "#EXTM3U\nhttp://h/live/seg.ts\n"


def test_errors_exit_non_zero(tmp_path, capsys):
    path = tmp_path / "bad.m3u"
    path.write_text("not a playlist", encoding="utf-8")

    assert main(["playlist", str(path)]) == 1
    assert "Invalid M3U format" in capsys.readouterr().err


def test_epg_with_naive_from_bound(tmp_path, capsys):
    path = tmp_path / "guide.xml"
    path.write_text(FRANCE_XMLTV, encoding="utf-8")

    assert main(["epg", str(path), "--from", "2023-01-01T12:00:00"]) == 0

    output = json.loads(capsys.readouterr().out)
    assert [p["title"] for p in output["programmes"]] == ["Meteo"]
