"""
Error taxonomy for the ingest core.

FormatError aborts a whole parse, EntryError is recovered inside the parser
loop, TransportError is raised by fetchers and absorbed only where the
caller asked for graceful degradation.
"""


class IngestError(Exception):
    """Base class for all ingest errors"""
    pass


class FormatError(IngestError, ValueError):
    """Raised when the top-level container (M3U header, XML root) is malformed"""
    pass


class EntryError(IngestError):
    """Raised for a single malformed channel, programme or variant"""
    pass


class XmltvDateError(EntryError, ValueError):
    """Raised when an XMLTV timestamp cannot be decoded"""
    pass


class TransportError(IngestError):
    """Raised when fetching a source fails"""

    def __init__(self, message: str, *, url: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ProbeError(IngestError):
    """Raised when the external media probe fails"""
    pass


__all__ = [
    "IngestError",
    "FormatError",
    "EntryError",
    "XmltvDateError",
    "TransportError",
    "ProbeError",
]
