"""
Named extraction rules for HLS and DASH manifests.

Each rule is a small pure function over manifest text so edge cases can be
tested one pattern at a time. extract_hls_info / extract_dash_info combine
them into a StreamManifestInfo.
"""
import re
from typing import Optional

from iptv_ingest.schemas import StreamManifestInfo, StreamType
from iptv_ingest.services.attribute_tokenizer import tokenize_attributes


HLS_ENDLIST = "#EXT-X-ENDLIST"
HLS_RESOLUTION_PATTERN = re.compile(r"RESOLUTION=(\d+x\d+)")
HLS_BANDWIDTH_PATTERN = re.compile(r"(?<![A-Z-])BANDWIDTH=(\d+)")
HLS_CODECS_PATTERN = re.compile(r'CODECS="([^"]+)"')
HLS_SEGMENT_DURATION_PATTERN = re.compile(r"#EXTINF:\s*(\d+(?:\.\d+)?)")

DASH_DYNAMIC_PATTERN = re.compile(r'\btype\s*=\s*"dynamic"')
DASH_DURATION_PATTERN = re.compile(r'mediaPresentationDuration\s*=\s*"([^"]+)"')
ISO8601_DURATION_PATTERN = re.compile(
    r"^P(?:(?P<years>\d+(?:\.\d+)?)Y)?(?:(?P<months>\d+(?:\.\d+)?)M)?(?:(?P<days>\d+(?:\.\d+)?)D)?"
    r"(?:T(?:(?P<hours>\d+(?:\.\d+)?)H)?(?:(?P<minutes>\d+(?:\.\d+)?)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)
DASH_ELEMENT_PATTERN = re.compile(r"<(?:AdaptationSet|Representation)\b([^>]*)>")
DASH_BANDWIDTH_PATTERN = re.compile(r'\bbandwidth\s*=\s*"(\d+)"')
DASH_CODECS_PATTERN = re.compile(r'\bcodecs\s*=\s*"([^"]*)"')


# HLS

def hls_is_live(content: str) -> bool:
    """Live playlists never carry #EXT-X-ENDLIST"""
    return HLS_ENDLIST not in content


def hls_resolution(content: str) -> str:
    match = HLS_RESOLUTION_PATTERN.search(content)
    return match.group(1) if match else ""


def hls_bandwidth(content: str) -> int:
    """First BANDWIDTH value, ignoring AVERAGE-BANDWIDTH"""
    match = HLS_BANDWIDTH_PATTERN.search(content)
    return int(match.group(1)) if match else 0


def hls_codecs(content: str) -> tuple[str, str]:
    """(video, audio) from the first CODECS attribute"""
    match = HLS_CODECS_PATTERN.search(content)
    if not match:
        return "", ""
    return _split_codecs(match.group(1))


def hls_total_duration(content: str) -> Optional[float]:
    """Sum of #EXTINF segment durations, None when there are none"""
    total = sum(float(value) for value in HLS_SEGMENT_DURATION_PATTERN.findall(content))
    return total if total > 0 else None


def extract_hls_info(content: str) -> StreamManifestInfo:
    is_live = hls_is_live(content)
    video_codec, audio_codec = hls_codecs(content)

    return StreamManifestInfo(
        stream_type=StreamType.HLS,
        resolution=hls_resolution(content),
        bitrate=hls_bandwidth(content),
        video_codec=video_codec,
        audio_codec=audio_codec,
        duration=None if is_live else hls_total_duration(content),
        is_live=is_live,
    )


# DASH

def dash_is_live(content: str) -> bool:
    return DASH_DYNAMIC_PATTERN.search(content) is not None


def parse_iso8601_duration(value: str) -> float:
    """
    Seconds in an ISO-8601 duration such as 'PT1H2M3.5S' or 'P1DT2H'

    Every component is optional and defaults to 0. Years and months count
    as 365 and 30 days.

    Raises:
        ValueError: If the value is not a day/time duration
    """
    match = ISO8601_DURATION_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Unsupported ISO-8601 duration: {value!r}")

    parts = {name: float(amount) if amount else 0.0 for name, amount in match.groupdict().items()}
    days = parts["years"] * 365 + parts["months"] * 30 + parts["days"]
    return days * 86400 + parts["hours"] * 3600 + parts["minutes"] * 60 + parts["seconds"]


def dash_duration(content: str) -> Optional[float]:
    match = DASH_DURATION_PATTERN.search(content)
    if not match:
        return None
    return parse_iso8601_duration(match.group(1))


def dash_resolution(content: str) -> str:
    """WIDTHxHEIGHT from the first AdaptationSet/Representation carrying both"""
    for element in DASH_ELEMENT_PATTERN.finditer(content):
        attributes = tokenize_attributes(element.group(1))
        width = attributes.get("width", "")
        height = attributes.get("height", "")
        if width.isdigit() and height.isdigit():
            return f"{width}x{height}"
    return ""


def dash_bandwidth(content: str) -> int:
    match = DASH_BANDWIDTH_PATTERN.search(content)
    return int(match.group(1)) if match else 0


def dash_codecs(content: str) -> tuple[str, str]:
    """First codecs attribute is video, the second is audio"""
    values = [value for value in DASH_CODECS_PATTERN.findall(content) if value.strip()]
    if not values:
        return "", ""
    if "," in values[0]:
        return _split_codecs(values[0])
    return values[0].strip(), values[1].strip() if len(values) > 1 else ""


def extract_dash_info(content: str) -> StreamManifestInfo:
    is_live = dash_is_live(content)
    video_codec, audio_codec = dash_codecs(content)

    return StreamManifestInfo(
        stream_type=StreamType.DASH,
        resolution=dash_resolution(content),
        bitrate=dash_bandwidth(content),
        video_codec=video_codec,
        audio_codec=audio_codec,
        duration=None if is_live else dash_duration(content),
        is_live=is_live,
    )


def _split_codecs(value: str) -> tuple[str, str]:
    codecs = [codec.strip() for codec in value.split(",")]
    video = codecs[0] if codecs else ""
    audio = codecs[1] if len(codecs) > 1 else ""
    return video, audio


__all__ = [
    "hls_is_live",
    "hls_resolution",
    "hls_bandwidth",
    "hls_codecs",
    "hls_total_duration",
    "extract_hls_info",
    "dash_is_live",
    "parse_iso8601_duration",
    "dash_duration",
    "dash_resolution",
    "dash_bandwidth",
    "dash_codecs",
    "extract_dash_info",
]
