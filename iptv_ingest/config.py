import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class CustomSettings(BaseSettings):
    """Ingest settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    log_level: str = "INFO"
    default_playlist_name: str = "IPTV Playlist"

    fetch_timeout_sec: float = 30.0
    fetch_max_retries: int = 3
    fetch_backoff_factor: float = 2.0
    fetch_user_agent: str = "iptv-ingest/0.1"

    epg_parse_timeout_sec: int = 600  # XML parsing timeout, 0 disables timeout

    ffprobe_path: str = "ffprobe"
    ffprobe_timeout_sec: float = 15.0

    lookup_cache_ttl_sec: int = 300
    lookup_cache_maxsize: int = 1024
    lookup_cache_sliding: bool = True

    model_config = SettingsConfigDict(
        env_prefix="IPTV_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return normalized

    @field_validator("default_playlist_name", "ffprobe_path")
    @classmethod
    def validate_non_empty(cls, value: str, info) -> str:
        if not value.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return value.strip()

    @field_validator(
        "fetch_timeout_sec",
        "ffprobe_timeout_sec",
        "fetch_max_retries",
        "lookup_cache_ttl_sec",
        "lookup_cache_maxsize",
    )
    @classmethod
    def validate_strictly_positive(cls, value: float, info) -> float:
        """Timeouts, retry count and cache sizing must be above zero."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be greater than zero")
        return value

    @field_validator("fetch_backoff_factor")
    @classmethod
    def validate_backoff_factor(cls, value: float) -> float:
        """Ensure the backoff multiplier is at least 1."""
        if value < 1:
            raise ValueError("fetch_backoff_factor must be >= 1")
        return value

    @field_validator("epg_parse_timeout_sec")
    @classmethod
    def validate_parse_timeout(cls, value: int) -> int:
        """Validate XML parsing timeout (seconds)."""
        if value < 0:
            raise ValueError("epg_parse_timeout_sec must be >= 0")
        return value

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.debug("Configuration loaded:")
        logger.debug("  Default playlist name: %s", self.default_playlist_name)
        logger.debug(
            "  Fetch: timeout=%.1fs retries=%s backoff=%.1f",
            self.fetch_timeout_sec,
            self.fetch_max_retries,
            self.fetch_backoff_factor,
        )
        logger.debug(
            "  Parse Timeout: %s",
            f"{self.epg_parse_timeout_sec}s" if self.epg_parse_timeout_sec else "disabled",
        )
        logger.debug("  ffprobe: %s (timeout %.1fs)", self.ffprobe_path, self.ffprobe_timeout_sec)
        logger.debug(
            "  Lookup cache: ttl=%ss maxsize=%s sliding=%s",
            self.lookup_cache_ttl_sec,
            self.lookup_cache_maxsize,
            self.lookup_cache_sliding,
        )


settings = CustomSettings()


def setup_logging(level: str | None = None) -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
