import logging
from datetime import timezone

import pytest
from pydantic import ValidationError

from sibol_maintenance.core import logging as logging_setup
from sibol_maintenance.core.config import AppConfig, LoggingConfig, get_settings
from sibol_maintenance.utils.files import guess_file_name, is_likely_image, local_path_from_uri
from sibol_maintenance.utils.time import format_full_stamp, parse_timestamp


def test_base_url_is_normalized(monkeypatch):
    monkeypatch.setenv("MAINTENANCE_API_BASE", "192.168.1.20:5000/")
    get_settings.cache_clear()
    assert get_settings().api_base_url == "http://192.168.1.20:5000"


def test_strict_timestamps_follow_environment(monkeypatch):
    assert get_settings().timeline_strict is True

    monkeypatch.setenv("APP_ENV", "production")
    assert AppConfig().timeline_strict is False

    monkeypatch.setenv("TIMELINE_STRICT_TIMESTAMPS", "true")
    assert AppConfig().timeline_strict is True


def test_read_retries_never_below_one(monkeypatch):
    monkeypatch.setenv("MAINTENANCE_HTTP_READ_RETRIES", "0")
    assert AppConfig().http_read_retries == 1


def test_mysql_timestamps_use_server_timezone():
    moment = parse_timestamp("2026-01-05 21:31:16")
    assert moment.utcoffset().total_seconds() == 0

    manila = parse_timestamp("2026-01-05 21:31:16", timezone="Asia/Manila")
    assert manila.astimezone(timezone.utc).hour == 13


def test_unparsable_timestamps_are_none():
    assert parse_timestamp(None) is None
    assert parse_timestamp("  ") is None
    assert parse_timestamp("yesterday-ish") is None
    assert format_full_stamp("yesterday-ish") == ""


def test_full_stamp_format():
    assert format_full_stamp("2026-01-05T21:31:16Z") == "Jan 05, 2026, 09:31 PM"


def test_image_detection():
    assert is_likely_image("report.pdf", "image/png")
    assert is_likely_image("https://res.cloudinary.com/demo/image/upload/v1/abc")
    assert is_likely_image("photo.JPG?width=200")
    assert not is_likely_image("report.pdf", "application/pdf")


def test_file_helpers(tmp_path):
    assert guess_file_name("https://cdn.test/a/b/pump.jpg?x=1") == "pump.jpg"
    assert guess_file_name(None) == "attachment"
    target = tmp_path / "my photo.jpg"
    assert local_path_from_uri(target.as_uri()) == target
    assert local_path_from_uri(str(target)) == target


def test_log_level_is_normalized():
    config = LoggingConfig.model_validate({"LOG_LEVEL": " debug "})
    assert config.level == "DEBUG"
    assert LoggingConfig.model_validate({"LOG_LEVEL": "success"}).stdlib_level == "INFO"


def test_unknown_log_level_is_rejected():
    with pytest.raises(ValidationError):
        LoggingConfig.model_validate({"LOG_LEVEL": "chatty"})


def test_setup_logging_quiets_configured_loggers(monkeypatch):
    monkeypatch.setattr(logging_setup, "_LOGGING_CONFIGURED", False)
    config = LoggingConfig.model_validate({"LOG_LEVEL": "INFO", "quiet_loggers": ["sibol.tests.noisy"]})

    logging_setup.setup_logging(config)

    assert logging.getLogger("sibol.tests.noisy").level == logging.WARNING
    assert logging_setup._LOGGING_CONFIGURED is True
