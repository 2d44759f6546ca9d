"""
Tests for settings (pydantic-settings) and logging setup (loguru).
"""

import pytest
from loguru import logger
from pydantic import ValidationError

from config.logging_config import get_logger, setup_logging
from config.settings.app_config import DEFAULT_FETCH_POLICIES, Settings


def test_default_policies(settings):
    weather = settings.policy_for("weather")
    point = settings.policy_for("point_temperature")

    assert weather.ttl_minutes == 10
    assert weather.retries == 10
    assert point.ttl_minutes == 5
    assert point.retries == 2
    assert set(settings.fetch_policies) == set(DEFAULT_FETCH_POLICIES)


def test_unknown_chain_policy(settings):
    with pytest.raises(KeyError, match="rainfall"):
        settings.policy_for("rainfall")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("RAWDAH_LOCATION_LAT", "21.4858")
    monkeypatch.setenv("RAWDAH_RETRY_JITTER", "true")
    monkeypatch.setenv(
        "RAWDAH_FETCH_POLICIES", '{"weather": {"ttl_minutes": 1, "retries": 3}}'
    )

    settings = Settings(_env_file=None)

    assert settings.location_lat == 21.4858
    assert settings.retry_jitter is True
    assert settings.policy_for("weather").retries == 3
    # chains not named in the override keep their defaults
    assert settings.policy_for("air_quality").retries == 8


def test_log_level_is_uppercased():
    assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, location_lat=120)
    with pytest.raises(ValidationError):
        Settings(
            _env_file=None,
            fetch_policies={"weather": {"ttl_minutes": 5, "retries": 0}},
        )


def test_file_sink_receives_records(tmp_path):
    setup_logging(log_level="INFO", log_dir=str(tmp_path))
    try:
        get_logger(domain="heat_map").info("Cache SAVE: weather:1:2")
        logger.debug("below threshold")
    finally:
        setup_logging(log_dir=None)

    content = (tmp_path / "rawdahscope.log").read_text(encoding="utf-8")
    assert "Cache SAVE: weather:1:2" in content
    assert "below threshold" not in content
