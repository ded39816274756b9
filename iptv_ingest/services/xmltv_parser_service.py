from datetime import datetime
from typing import Optional
import logging
import re

from lxml import etree # type: ignore

from iptv_ingest.errors import EntryError, FormatError
from iptv_ingest.services.parse_types import EpgChannel, EpgDocument, EpgProgramme
from iptv_ingest.utils.logging_helpers import log_parse_summary, sanitize_url_for_logging
from iptv_ingest.utils.xmltv_time import is_in_time_window, parse_xmltv_datetime

logger = logging.getLogger(__name__)

_YEAR_PATTERN = re.compile(r"^\s*(\d{4})")


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
        remove_comments=True,
    )


def parse_xmltv(
    xml_text: str | bytes,
    source_id: str = "",
    time_from: Optional[datetime] = None,
    time_to: Optional[datetime] = None
) -> EpgDocument:
    """
    Parse XMLTV content and return channels and programmes

    Args:
        xml_text: XMLTV document as text or raw bytes
        source_id: URL or path the content came from (for messages)
        time_from: Optional start of time window (UTC)
        time_to: Optional end of time window (UTC)

    Returns:
        EpgDocument, unpackable as (channels, programmes)

    Raises:
        FormatError: If the content is not parseable XML
    """
    data = xml_text.encode("utf-8") if isinstance(xml_text, str) else xml_text
    source = sanitize_url_for_logging(source_id) if source_id else "<inline>"

    try:
        root = etree.fromstring(data, parser=_xml_parser())
    except etree.XMLSyntaxError as e:
        logger.error(f"  XML parsing error in {source}: {e}")
        raise FormatError(f"Invalid XMLTV document in {source}: {e}") from e

    if root is None:
        raise FormatError(f"Invalid XMLTV document in {source}: empty document")

    return parse_xmltv_root(root, source_id, time_from, time_to)


def parse_xmltv_file(
    file_path: str,
    time_from: Optional[datetime] = None,
    time_to: Optional[datetime] = None
) -> EpgDocument:
    """
    Parse an XMLTV file already present on disk

    Raises:
        FormatError: If XML is malformed
        OSError: If file can't be read
    """
    logger.debug(f"Parsing XMLTV file: {file_path}")

    try:
        tree = etree.parse(file_path, parser=_xml_parser())
    except etree.XMLSyntaxError as e:
        logger.error(f"  XML parsing error: {e}")
        raise FormatError(f"Invalid XMLTV document in {file_path}: {e}") from e

    return parse_xmltv_root(tree.getroot(), str(file_path), time_from, time_to)


def parse_xmltv_root(
    root: etree._Element,
    source_id: str = "",
    time_from: Optional[datetime] = None,
    time_to: Optional[datetime] = None
) -> EpgDocument:
    """Extract channels and programmes from a parsed <tv> root"""
    logger.debug(f"  XML document loaded (root tag: {root.tag})")

    channels = _parse_channels(root)
    log_parse_summary(logger, "EPG channels", source_id, len(channels))

    programmes, skipped = _parse_programmes(root, time_from, time_to)
    log_parse_summary(logger, "programmes", source_id, len(programmes), skipped)

    return EpgDocument(channels=channels, programmes=programmes, source_id=source_id)


def _parse_channels(root: etree._Element) -> list[EpgChannel]:
    """Extract channels from XMLTV root element"""
    channels = []

    for channel in root.iter('channel'):
        xmltv_id = (channel.get('id') or '').strip()
        if not xmltv_id:
            logger.debug("Skipping channel with missing ID attribute")
            continue

        # Get display name (first one or fallback to ID)
        display_name = _get_text(channel, 'display-name', default=xmltv_id)

        channels.append(EpgChannel(
            id=xmltv_id,
            display_name=display_name or xmltv_id,
            icon_url=_get_icon(channel)
        ))

    return channels


def _parse_programmes(
    root: etree._Element,
    time_from: Optional[datetime],
    time_to: Optional[datetime]
) -> tuple[list[EpgProgramme], int]:
    """Extract programmes from XMLTV root element, skipping malformed ones"""
    programmes = []
    skipped = 0

    for element in root.iter('programme'):
        try:
            programme = parse_programme(element)
        except EntryError as e:
            skipped += 1
            logger.warning(f"Skipping programme on line {element.sourceline}: {e}")
            continue

        if is_in_time_window(programme.start_time, time_from, time_to):
            programmes.append(programme)

    return programmes, skipped


def parse_programme(programme: etree._Element) -> EpgProgramme:
    """
    Parse single programme element

    Raises:
        EntryError: If required attributes are missing or times are invalid
    """
    channel_id = programme.get('channel')
    start_str = programme.get('start')
    stop_str = programme.get('stop')

    if not channel_id or not start_str or not stop_str:
        raise EntryError(
            f"missing required attributes (channel={channel_id!r}, start={start_str!r}, stop={stop_str!r})"
        )

    start_time = parse_xmltv_datetime(start_str)
    stop_time = parse_xmltv_datetime(stop_str)
    if stop_time <= start_time:
        raise EntryError(f"stop {stop_str!r} is not after start {start_str!r}")

    credits = programme.find('credits')
    actors = _get_texts(credits, 'actor') if credits is not None else []
    directors = _get_texts(credits, 'director') if credits is not None else []

    episode = _get_text(programme, 'episode-num', default='')
    season_number, episode_number = parse_episode_num(episode)

    return EpgProgramme(
        channel_id=channel_id,
        start_time=start_time,
        end_time=stop_time,
        title=_get_text(programme, 'title', default=''),
        description=_get_text(programme, 'desc', default=''),
        category=_get_text(programme, 'category', default=''),
        language=_get_text(programme, 'language', default=''),
        actors=", ".join(actors),
        directors=", ".join(directors),
        episode=episode,
        season_number=season_number,
        episode_number=episode_number,
        year=parse_year(_get_text(programme, 'date')),
        image_url=_get_icon(programme)
    )


def parse_episode_num(value: Optional[str]) -> tuple[Optional[int], Optional[int]]:
    """
    Split a dot-delimited 'season.episode.part' code

    Each part is parsed on its own; a 'n/total' part keeps n. Missing or
    non-numeric parts yield None.
    """
    if not value:
        return None, None

    parts = value.split('.')
    season = _parse_episode_part(parts[0]) if len(parts) > 0 else None
    episode = _parse_episode_part(parts[1]) if len(parts) > 1 else None
    return season, episode


def _parse_episode_part(part: str) -> Optional[int]:
    number = part.split('/')[0].strip()
    if not number.isdigit():
        return None
    return int(number)


def parse_year(value: Optional[str]) -> Optional[int]:
    """Year from an XMLTV <date> value such as '2019' or '20190412'"""
    if not value:
        return None
    match = _YEAR_PATTERN.match(value)
    return int(match.group(1)) if match else None


def _get_icon(element: etree._Element) -> str:
    icon_elem = element.find('icon')
    if icon_elem is None:
        return ''
    return (icon_elem.get('src') or '').strip()


def _get_texts(element: etree._Element, tag: str) -> list[str]:
    return [child.text.strip() for child in element.findall(tag) if child.text and child.text.strip()]


def _get_text(element: etree._Element, tag: str, default: Optional[str] = None) -> Optional[str]:
    """Safely extract text from XML element"""
    child = element.find(tag)
    if child is None or not child.text:
        return default
    return child.text.strip()
