"""
Media probe capability for direct (non-manifest) media URLs.

The analyzer depends only on the MediaProbe protocol. FfprobeMediaProbe is
the stock implementation and runs ffprobe as an external process.
"""
import asyncio
import json
import logging
import shutil
from typing import Any, Protocol, runtime_checkable

from iptv_ingest.config import settings
from iptv_ingest.errors import ProbeError
from iptv_ingest.schemas import MediaInfo
from iptv_ingest.utils.logging_helpers import sanitize_url_for_logging

logger = logging.getLogger(__name__)


@runtime_checkable
class MediaProbe(Protocol):
    async def probe(self, url: str) -> MediaInfo:
        """Inspect url, raising ProbeError on failure"""
        ...


class FfprobeMediaProbe:
    """Runs `ffprobe -show_format -show_streams` and maps its JSON output"""

    def __init__(self, executable: str | None = None, timeout: float | None = None) -> None:
        self.executable = executable or settings.ffprobe_path
        self.timeout = timeout if timeout is not None else settings.ffprobe_timeout_sec

    def is_installed(self) -> bool:
        return shutil.which(self.executable) is not None

    async def probe(self, url: str) -> MediaInfo:
        safe_url = sanitize_url_for_logging(url)
        if not self.is_installed():
            raise ProbeError(f"{self.executable} not found on PATH")

        cmd = [
            self.executable,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            url,
        ]
        logger.debug(f"Probing {safe_url} with {self.executable}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProbeError(f"Cannot start {self.executable}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ProbeError(f"{self.executable} timed out after {self.timeout}s for {safe_url}") from e
        finally:
            # Timeout or cancellation leaves the child running
            if process.returncode is None:
                process.kill()
                await process.wait()

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise ProbeError(f"{self.executable} exited with {process.returncode} for {safe_url}: {message}")

        try:
            payload = json.loads(stdout.decode("utf-8", errors="replace") or "{}")
        except json.JSONDecodeError as e:
            raise ProbeError(f"Invalid {self.executable} output for {safe_url}: {e}") from e

        return media_info_from_ffprobe(payload)


def media_info_from_ffprobe(payload: dict[str, Any]) -> MediaInfo:
    """Map ffprobe's JSON document onto MediaInfo"""
    fmt = payload.get("format") or {}
    streams = payload.get("streams") or []

    video = next((s for s in streams if s.get("codec_type") == "video"), {})
    audio = next((s for s in streams if s.get("codec_type") == "audio"), {})

    resolution = ""
    if video.get("width") and video.get("height"):
        resolution = f"{video['width']}x{video['height']}"

    return MediaInfo(
        duration=_to_float(fmt.get("duration")),
        resolution=resolution,
        bitrate=_to_int(fmt.get("bit_rate")) or _to_int(video.get("bit_rate")) or 0,
        video_codec=video.get("codec_name", ""),
        audio_codec=audio.get("codec_name", ""),
    )


def _to_float(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> int | None:
    number = _to_float(value)
    return int(number) if number is not None else None
