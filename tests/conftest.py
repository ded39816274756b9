from collections.abc import AsyncIterator

import pytest

from iptv_ingest.dependencies import reset_service_locator
from iptv_ingest.errors import TransportError
from iptv_ingest.schemas import MediaInfo


class FakeFetcher:
    """In-memory Fetcher: url -> text/bytes, anything else is a TransportError"""

    def __init__(self, pages: dict[str, str | bytes] | None = None, statuses: dict[str, int] | None = None):
        self.pages = pages or {}
        self.statuses = statuses or {}
        self.calls: list[str] = []

    def _body(self, url: str) -> bytes:
        self.calls.append(url)
        if url not in self.pages:
            raise TransportError(f"unreachable: {url}", url=url)
        body = self.pages[url]
        return body.encode("utf-8") if isinstance(body, str) else body

    async def fetch_text(self, url: str) -> str:
        return self._body(url).decode("utf-8")

    async def fetch_status(self, url: str) -> int:
        self.calls.append(url)
        if url not in self.statuses:
            raise TransportError(f"unreachable: {url}", url=url)
        return self.statuses[url]

    async def stream(self, url: str) -> AsyncIterator[bytes]:
        body = self._body(url)
        for start in range(0, len(body), 4):
            yield body[start:start + 4]


class FakeProbe:
    def __init__(self, result: MediaInfo | None = None, error: Exception | None = None):
        self.result = result or MediaInfo()
        self.error = error
        self.probed: list[str] = []

    async def probe(self, url: str) -> MediaInfo:
        self.probed.append(url)
        if self.error is not None:
            raise self.error
        return self.result


class MemorySink:
    def __init__(self):
        self.chunks: list[bytes] = []

    async def write(self, data: bytes) -> None:
        self.chunks.append(data)

    @property
    def data(self) -> bytes:
        return b"".join(self.chunks)


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def sink():
    return MemorySink()


@pytest.fixture(autouse=True)
def _fresh_service_locator():
    reset_service_locator()
    yield
    reset_service_locator()


FRANCE_PLAYLIST = (
    '#EXTM3U x-tvg-url="http://epg.example.com/guide.xml"\n'
    '#EXTINF:-1 tvg-id="france2.fr" tvg-name="France 2" tvg-logo="http://logo/f2.png" '
    'group-title="France" tvg-language="French",France 2\n'
    'http://x/y.m3u8\n'
    '#EXTINF:-1 tvg-id="france3.fr" tvg-name="France 3" group-title="France",France 3\n'
    'http://x/z.m3u8\n'
    '#EXTINF:-1 tvg-id="film.1" group-title="VOD Movies",Some Film\n'
    'http://x/movie/1.mp4\n'
)

FRANCE_XMLTV = """<?xml version="1.0" encoding="UTF-8"?>
<tv generator-info-name="test">
  <channel id="france2.fr">
    <display-name>France 2</display-name>
    <icon src="http://logo/f2.png"/>
  </channel>
  <channel id="france3.fr">
    <display-name>France 3</display-name>
  </channel>
  <programme start="20230101120000 +0100" stop="20230101130000 +0100" channel="france2.fr">
    <title>Journal</title>
    <desc>Les informations</desc>
    <category>News</category>
    <language>fr</language>
    <credits>
      <director>Jean Dupont</director>
      <actor>Anne Martin</actor>
      <actor>Paul Durand</actor>
    </credits>
    <date>20230101</date>
    <episode-num system="xmltv_ns">2.5.0/1</episode-num>
    <icon src="http://img/journal.jpg"/>
  </programme>
  <programme start="20230101130000 +0100" channel="france2.fr">
    <title>No stop</title>
  </programme>
  <programme start="20230101140000 +0000" stop="20230101150000 +0000" channel="france3.fr">
    <title>Meteo</title>
  </programme>
</tv>
"""
