import httpx
import pytest

from iptv_ingest.errors import TransportError
from iptv_ingest.utils.file_operations import (
    Fetcher,
    HttpFetcher,
    cleanup_temp_file,
    download_to_temp_file,
    read_text_file,
)


def make_fetcher(handler, max_retries=1):
    return HttpFetcher(
        timeout=5,
        max_retries=max_retries,
        backoff_factor=1,
        user_agent="test-agent",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def no_sleep(monkeypatch):
    async def _sleep(_seconds):
        return None
    monkeypatch.setattr("iptv_ingest.utils.file_operations.asyncio.sleep", _sleep)


def test_http_fetcher_is_a_fetcher():
    assert isinstance(make_fetcher(lambda request: httpx.Response(200)), Fetcher)


async def test_fetch_text_sends_user_agent():
    seen = {}

    def handler(request):
        seen["ua"] = request.headers["User-Agent"]
        return httpx.Response(200, text="#EXTM3U\n")

    text = await make_fetcher(handler).fetch_text("http://h/list.m3u")

    assert text == "#EXTM3U\n"
    assert seen["ua"] == "test-agent"


async def test_client_errors_are_not_retried():
    calls = []

    def handler(request):
        calls.append(request.url)
        return httpx.Response(404)

    with pytest.raises(TransportError) as exc_info:
        await make_fetcher(handler, max_retries=3).fetch_text("http://h/missing.m3u")

    assert exc_info.value.status_code == 404
    assert exc_info.value.url == "http://h/missing.m3u"
    assert len(calls) == 1


async def test_server_errors_are_retried(no_sleep):
    responses = iter([httpx.Response(503), httpx.Response(200, text="ok")])

    text = await make_fetcher(lambda request: next(responses), max_retries=2).fetch_text("http://h/a")

    assert text == "ok"


async def test_retries_exhausted(no_sleep):
    calls = []

    def handler(request):
        calls.append(1)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError):
        await make_fetcher(handler, max_retries=3).fetch_text("http://h/a")

    assert len(calls) == 3


async def test_fetch_status_uses_head():
    def handler(request):
        assert request.method == "HEAD"
        return httpx.Response(204)

    assert await make_fetcher(handler).fetch_status("http://h/a.ts") == 204


async def test_fetch_status_falls_back_to_ranged_get():
    def handler(request):
        if request.method == "HEAD":
            return httpx.Response(405)
        assert request.headers["Range"] == "bytes=0-0"
        return httpx.Response(206, content=b"x")

    assert await make_fetcher(handler).fetch_status("http://h/a.ts") == 206


async def test_fetch_status_unreachable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError):
        await make_fetcher(handler).fetch_status("http://h/a.ts")


async def test_stream_yields_body():
    fetcher = make_fetcher(lambda request: httpx.Response(200, content=b"abcdef"))

    chunks = [chunk async for chunk in fetcher.stream("http://h/a.ts")]

    assert b"".join(chunks) == b"abcdef"


async def test_stream_http_error():
    fetcher = make_fetcher(lambda request: httpx.Response(500))

    with pytest.raises(TransportError) as exc_info:
        async for _ in fetcher.stream("http://h/a.ts"):
            pass

    assert exc_info.value.status_code == 500


async def test_read_text_file(tmp_path):
    path = tmp_path / "list.m3u"
    path.write_text("#EXTM3U\n", encoding="utf-8")

    assert await read_text_file(path) == "#EXTM3U\n"

    with pytest.raises(TransportError):
        await read_text_file(tmp_path / "missing.m3u")


async def test_download_to_temp_file_and_cleanup():
    fetcher = make_fetcher(lambda request: httpx.Response(200, content=b"<tv/>"))

    path = await download_to_temp_file(fetcher, "http://h/guide.xml", "iptv_ingest_test_download.xml")

    try:
        assert path.read_bytes() == b"<tv/>"
    finally:
        assert cleanup_temp_file(path) is True
    assert not path.exists()
    assert cleanup_temp_file(path) is False


async def test_failed_download_leaves_no_file():
    fetcher = make_fetcher(lambda request: httpx.Response(500))

    with pytest.raises(TransportError):
        await download_to_temp_file(fetcher, "http://h/guide.xml", "iptv_ingest_test_failed.xml")


BAD_URL = "http://exa mple.com/\x00list.m3u"


async def test_invalid_url_raises_transport_error():
    fetcher = make_fetcher(lambda request: httpx.Response(200, text="#EXTM3U\n"))

    with pytest.raises(TransportError) as exc_info:
        await fetcher.fetch_text(BAD_URL)
    assert exc_info.value.url == BAD_URL

    with pytest.raises(TransportError):
        await fetcher.fetch_status(BAD_URL)

    with pytest.raises(TransportError):
        async for _ in fetcher.stream(BAD_URL):
            pass
