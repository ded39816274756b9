import pytest
from pydantic import ValidationError

from iptv_ingest.config import CustomSettings


def test_defaults():
    config = CustomSettings(_env_file=None)

    assert config.default_playlist_name == "IPTV Playlist"
    assert config.log_level == "INFO"
    assert config.epg_parse_timeout_sec == 600


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("IPTV_LOG_LEVEL", "debug")
    monkeypatch.setenv("IPTV_FETCH_MAX_RETRIES", "5")

    config = CustomSettings(_env_file=None)

    assert config.log_level == "DEBUG"
    assert config.fetch_max_retries == 5


@pytest.mark.parametrize("field, value", [
    ("log_level", "LOUD"),
    ("default_playlist_name", "   "),
    ("fetch_timeout_sec", 0),
    ("fetch_max_retries", 0),
    ("fetch_backoff_factor", 0.5),
    ("epg_parse_timeout_sec", -1),
    ("lookup_cache_ttl_sec", 0),
])
def test_invalid_values(field, value):
    with pytest.raises(ValidationError):
        CustomSettings(_env_file=None, **{field: value})
