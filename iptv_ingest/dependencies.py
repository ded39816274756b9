"""
Service wiring for callers of the ingest core

The parsers are pure functions and need nothing from here. The I/O facing
pieces (fetcher, media probe, stream analyzer, lookup cache) are looked up by
type so the CLI or an HTTP layer share one set of instances, and tests can
replace the fetcher before anything is built from it.
"""
import logging
from contextlib import contextmanager
from typing import Callable, Any, Iterator, TypeVar

from iptv_ingest.config import settings
from iptv_ingest.services.media_probe import FfprobeMediaProbe, MediaProbe
from iptv_ingest.services.stream_analyzer_service import StreamAnalyzer
from iptv_ingest.utils.file_operations import Fetcher, HttpFetcher
from iptv_ingest.utils.lookup_cache import LookupCache


logger = logging.getLogger(__name__)

T = TypeVar('T')


class ServiceLocator:
    """
    Type keyed registry of ingest collaborators.

    A type maps either to one shared instance or to a builder called on
    every lookup. Shared instances take precedence.
    """

    def __init__(self):
        self._instances: dict[type, Any] = {}
        self._builders: dict[type, Callable[[], Any]] = {}

    def register_singleton(self, service_type: type[T], instance: T) -> None:
        """Share instance for every lookup of service_type"""
        self._instances[service_type] = instance
        logger.debug(f"Service {service_type.__name__} -> {type(instance).__name__}")

    def register_factory(self, service_type: type[T], factory: Callable[[], T]) -> None:
        """Build a fresh service_type with factory on every lookup"""
        self._builders[service_type] = factory
        logger.debug(f"Service {service_type.__name__} -> factory")

    def is_registered(self, service_type: type) -> bool:
        return service_type in self._instances or service_type in self._builders

    def get(self, service_type: type[T]) -> T:
        """
        Look up a service

        Raises:
            KeyError: If nothing is registered for service_type
        """
        instance = self._instances.get(service_type)
        if instance is not None:
            return instance

        builder = self._builders.get(service_type)
        if builder is None:
            raise KeyError(f"No {service_type.__name__} registered")
        return builder()

    @contextmanager
    def override(self, service_type: type[T], instance: T) -> Iterator[T]:
        """Temporarily share instance for service_type, restoring the previous registration"""
        previous = self._instances.get(service_type)
        self._instances[service_type] = instance
        try:
            yield instance
        finally:
            if previous is None:
                self._instances.pop(service_type, None)
            else:
                self._instances[service_type] = previous

    def reset(self) -> None:
        self._instances.clear()
        self._builders.clear()


def register_default_services(locator: ServiceLocator) -> ServiceLocator:
    """Fill locator with the httpx fetcher, ffprobe, a lookup cache and the analyzer"""
    locator.register_singleton(Fetcher, HttpFetcher())
    locator.register_singleton(MediaProbe, FfprobeMediaProbe())
    locator.register_singleton(LookupCache, LookupCache(
        settings.lookup_cache_ttl_sec,
        settings.lookup_cache_maxsize,
        sliding=settings.lookup_cache_sliding,
    ))
    # Built per lookup so a replaced Fetcher is picked up
    locator.register_factory(
        StreamAnalyzer,
        lambda: StreamAnalyzer(locator.get(Fetcher), locator.get(MediaProbe)),
    )
    return locator


_service_locator: ServiceLocator | None = None


def get_service_locator() -> ServiceLocator:
    """Process wide locator, created with the default services on first use"""
    global _service_locator
    if _service_locator is None:
        _service_locator = register_default_services(ServiceLocator())
    return _service_locator


def reset_service_locator() -> None:
    """Drop the process wide locator; the next lookup rebuilds it"""
    global _service_locator
    _service_locator = None
