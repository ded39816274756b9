"""
XMLTV date and time utilities

Decodes the XMLTV timestamp format 'YYYYMMDDHHMMSS [+-HHMM]' into aware UTC
datetimes. All programme time handling goes through this module.
"""
from datetime import datetime, timedelta, timezone
import logging
import re

from iptv_ingest.errors import XmltvDateError

logger = logging.getLogger(__name__)

_OFFSET_PATTERN = re.compile(r"^([+-])(\d{2})(\d{2})?$")


def parse_xmltv_offset(offset_str: str) -> timedelta:
    """
    Parse an XMLTV timezone offset

    Args:
        offset_str: Offset like '+0100', '-0530' or '+02'

    Returns:
        Signed offset east of UTC

    Raises:
        XmltvDateError: If the offset is malformed
    """
    match = _OFFSET_PATTERN.match(offset_str.strip())
    if not match:
        raise XmltvDateError(f"Invalid XMLTV timezone offset: '{offset_str}'")

    sign = 1 if match.group(1) == "+" else -1
    hours = int(match.group(2))
    minutes = int(match.group(3) or 0)
    return sign * timedelta(hours=hours, minutes=minutes)


def parse_xmltv_datetime(time_str: str) -> datetime:
    """
    Convert XMLTV time format to an aware UTC datetime

    The six date fields are read at fixed positions and taken as UTC, then
    the trailing offset (if any) is subtracted: '+0100' means local time is
    one hour ahead of UTC.

    Args:
        time_str: XMLTV time like '20080715003000 -0600'

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        XmltvDateError: If the string cannot be decoded
    """
    if not time_str or not time_str.strip():
        raise XmltvDateError("Empty XMLTV datetime")

    parts = time_str.strip().split(None, 1)
    date_part = parts[0]

    # Offsets glued to the timestamp ('20230101120000+0100')
    tz_part = parts[1] if len(parts) > 1 else ""
    if not tz_part and len(date_part) > 14 and date_part[14] in "+-":
        date_part, tz_part = date_part[:14], date_part[14:]

    if len(date_part) < 14 or not date_part[:14].isdigit():
        raise XmltvDateError(f"Invalid XMLTV datetime: '{time_str}'")

    try:
        dt = datetime(
            int(date_part[0:4]),
            int(date_part[4:6]),
            int(date_part[6:8]),
            int(date_part[8:10]),
            int(date_part[10:12]),
            int(date_part[12:14]),
            tzinfo=timezone.utc,
        )
    except ValueError as e:
        raise XmltvDateError(f"Invalid XMLTV datetime: '{time_str}'") from e

    if tz_part and tz_part[0] in "+-":
        dt -= parse_xmltv_offset(tz_part)

    return dt


def as_utc(value: datetime) -> datetime:
    """Aware datetime in UTC; naive values are taken to be UTC already"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_in_time_window(time_value: datetime, time_from: datetime | None, time_to: datetime | None) -> bool:
    """Check if time is within the specified window (naive bounds count as UTC)"""
    if not time_from and not time_to:
        return True

    time_value = as_utc(time_value)

    if time_from and time_value < as_utc(time_from):
        return False

    if time_to and time_value > as_utc(time_to):
        return False

    return True
