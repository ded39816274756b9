"""
Structured logging helpers for consistent log formatting.

Provides utilities for structured, clean logging without excessive decorative separators.
"""
import logging
from urllib.parse import urlsplit, urlunsplit


def log_section_start(logger: logging.Logger, section_name: str) -> None:
    """
    Log the start of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being started
    """
    logger.info(f"Starting: {section_name}")


def log_section_end(logger: logging.Logger, section_name: str) -> None:
    """
    Log the end of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being ended
    """
    logger.info(f"Completed: {section_name}")


def log_parse_summary(
    logger: logging.Logger,
    kind: str,
    source_id: str,
    parsed: int,
    skipped: int = 0,
) -> None:
    """
    Log a parse summary line.

    Args:
        logger: Logger instance
        kind: What was parsed (e.g. "channels", "programmes")
        source_id: Source identifier, sanitized before logging
        parsed: Number of items produced
        skipped: Number of malformed items skipped
    """
    source = sanitize_url_for_logging(source_id) if source_id else "<inline>"
    if skipped:
        logger.info(f"Parsed {parsed} {kind} from {source} ({skipped} skipped)")
    else:
        logger.info(f"Parsed {parsed} {kind} from {source}")


def sanitize_url_for_logging(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    if "://" not in url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, f"***:***@{host}", parts.path, parts.query, parts.fragment))
