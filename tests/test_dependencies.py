import pytest

from iptv_ingest.dependencies import ServiceLocator, get_service_locator, reset_service_locator
from iptv_ingest.services.media_probe import FfprobeMediaProbe, MediaProbe
from iptv_ingest.services.stream_analyzer_service import StreamAnalyzer
from iptv_ingest.utils.file_operations import Fetcher, HttpFetcher
from iptv_ingest.utils.lookup_cache import LookupCache

from conftest import FakeFetcher


def test_default_services_are_registered():
    locator = get_service_locator()

    assert isinstance(locator.get(Fetcher), HttpFetcher)
    assert isinstance(locator.get(MediaProbe), FfprobeMediaProbe)
    assert isinstance(locator.get(LookupCache), LookupCache)
    assert locator.get(Fetcher) is locator.get(Fetcher)


def test_analyzer_factory_uses_registered_fetcher():
    locator = get_service_locator()
    fake = FakeFetcher()
    locator.register_singleton(Fetcher, fake)

    analyzer = locator.get(StreamAnalyzer)

    assert analyzer.fetcher is fake
    assert analyzer is not locator.get(StreamAnalyzer)


def test_unknown_service_raises_key_error():
    with pytest.raises(KeyError):
        ServiceLocator().get(StreamAnalyzer)


def test_reset_gives_fresh_locator():
    first = get_service_locator()
    reset_service_locator()

    assert get_service_locator() is not first


def test_override_restores_previous_instance():
    locator = get_service_locator()
    original = locator.get(Fetcher)
    fake = FakeFetcher()

    with locator.override(Fetcher, fake):
        assert locator.get(StreamAnalyzer).fetcher is fake

    assert locator.get(Fetcher) is original
    assert locator.is_registered(StreamAnalyzer)
