"""Tests for environment settings and logging setup."""

import logging

import pytest

from tgcp.config import (
    clear_settings_cache,
    get_http_settings,
    get_logging_settings,
    get_path_settings,
)
from tgcp.errors import ConfigurationError, InvalidConfigurationError
from tgcp.logging import configure_logging, get_logger, level_from_name, log_performance


@pytest.fixture(autouse=True)
def fresh_settings():
    clear_settings_cache()
    yield
    clear_settings_cache()


class TestSettings:
    def test_http_defaults(self) -> None:
        settings = get_http_settings()
        assert settings.timeout == 30.0
        assert settings.max_retries == 3

    def test_http_env_override(self, monkeypatch) -> None:
        monkeypatch.setenv("TGCP_HTTP_MAX_RETRIES", "5")
        assert get_http_settings().max_retries == 5

    def test_settings_are_cached(self) -> None:
        assert get_logging_settings() is get_logging_settings()

    def test_config_dir_override(self, monkeypatch, tmp_path) -> None:
        monkeypatch.setenv("TGCP_CONFIG_DIR", str(tmp_path))
        assert get_path_settings().config_dir == tmp_path

    def test_config_dir_follows_xdg(self, monkeypatch, tmp_path) -> None:
        monkeypatch.delenv("TGCP_CONFIG_DIR", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert get_path_settings().config_dir == tmp_path / "tgcp"


class TestErrors:
    def test_configuration_error_formatting(self) -> None:
        error = InvalidConfigurationError(
            message="Bad project",
            error_code="CONFIG-InvalidProject",
            suggestion="Use a valid id",
        )
        assert str(error) == "[CONFIG-InvalidProject] Bad project"
        assert "Suggestion: Use a valid id" in error.format_user_message()
        assert isinstance(error, ConfigurationError)
        assert error.to_dict()["error_code"] == "CONFIG-InvalidProject"


class TestLogging:
    @pytest.mark.parametrize(
        "name,level",
        [
            ("off", None),
            ("ERROR", logging.ERROR),
            ("warn", logging.WARNING),
            ("info", logging.INFO),
            ("debug", logging.DEBUG),
            ("trace", logging.NOTSET),
        ],
    )
    def test_level_from_name(self, name: str, level) -> None:
        assert level_from_name(name) == level

    def test_unknown_level(self) -> None:
        with pytest.raises(ValueError):
            level_from_name("chatty")

    def test_file_logging(self, tmp_path) -> None:
        log_file = configure_logging(log_dir=tmp_path, file_level=logging.INFO)
        try:
            assert log_file == tmp_path / "tgcp.log"
            get_logger("tgcp.test").info("hello from the test")
            for handler in logging.getLogger().handlers:
                handler.flush()
            assert "hello from the test" in log_file.read_text()
        finally:
            configure_logging(log_dir=None)

    def test_logging_off(self, tmp_path) -> None:
        assert configure_logging(log_dir=tmp_path, file_level=None) is None
        assert not (tmp_path / "tgcp.log").exists()

    @pytest.mark.asyncio
    async def test_log_performance_wraps_coroutines(self) -> None:
        @log_performance()
        async def work(value: int) -> int:
            return value * 2

        assert await work(21) == 42
        assert work.__name__ == "work"
