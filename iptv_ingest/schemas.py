from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class StreamType(str, Enum):
    """Stream classification derived from the URL extension"""
    HLS = "HLS"
    DASH = "DASH"
    DIRECT = "Direct"
    UNKNOWN = "Unknown"


class MediaInfo(BaseModel):
    """Technical metadata reported by a media probe"""
    model_config = ConfigDict(frozen=True)

    duration: float | None = Field(None, description="Duration in seconds")
    resolution: str = Field("", description="Resolution as WIDTHxHEIGHT")
    bitrate: int = Field(0, description="Overall bitrate in bits per second")
    video_codec: str = Field("", description="Video codec name")
    audio_codec: str = Field("", description="Audio codec name")


class StreamManifestInfo(BaseModel):
    """Result of a single stream analysis"""
    model_config = ConfigDict(frozen=True)

    stream_type: StreamType = Field(StreamType.UNKNOWN, description="HLS, DASH, Direct or Unknown")
    resolution: str = Field("", description="Resolution as WIDTHxHEIGHT")
    bitrate: int = Field(0, description="Bitrate in bits per second")
    video_codec: str = Field("", description="Video codec")
    audio_codec: str = Field("", description="Audio codec")
    duration: float | None = Field(None, description="Total duration in seconds (VOD only)")
    is_live: bool = Field(False, description="True for live streams")

    @classmethod
    def unknown(cls) -> "StreamManifestInfo":
        """Zero-valued result used when analysis degrades"""
        return cls(stream_type=StreamType.UNKNOWN)


__all__ = ["StreamType", "MediaInfo", "StreamManifestInfo"]
