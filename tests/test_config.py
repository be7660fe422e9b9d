"""Tests for configuration and logger setup."""

import logging
from dataclasses import fields

from pagesnap_core.config import Config
from pagesnap_core.diagnostics import get_logger, set_level


class TestConfig:
    """Config dataclass."""

    def test_retry_delay_in_seconds(self):
        """retry_delay converts the millisecond setting."""
        assert Config(retry_delay_ms=250).retry_delay == 0.25

    def test_debug_dir_created_only_with_dumps(self, tmp_path):
        """The dump directory is made when dumps are on."""
        Config(debug_dumps=False, debug_dir=tmp_path / "off")
        Config(debug_dumps=True, debug_dir=tmp_path / "on")
        assert not (tmp_path / "off").exists()
        assert (tmp_path / "on").is_dir()

    def test_log_verbosity_is_not_a_config_field(self):
        """PAGESNAP_DEBUG is read by the logger factory alone."""
        names = {f.name for f in fields(Config)}
        assert "debug_dumps" in names
        assert not any(name == "enable_debug" for name in names)


class TestLogging:
    """get_logger / set_level."""

    def test_debug_env_sets_level(self, monkeypatch):
        """PAGESNAP_DEBUG=true hands out DEBUG loggers."""
        monkeypatch.setenv("PAGESNAP_DEBUG", "true")
        lg = get_logger("pagesnap.tests.debug_env")
        assert lg.level == logging.DEBUG
        assert len(lg.handlers) == 1

    def test_cached_and_single_handler(self, monkeypatch):
        """Repeated lookups share one logger and one handler."""
        monkeypatch.setenv("PAGESNAP_DEBUG", "false")
        first = get_logger("pagesnap.tests.cached")
        second = get_logger("pagesnap.tests.cached")
        assert first is second
        assert first.level == logging.INFO
        assert len(second.handlers) == 1

    def test_set_level(self, monkeypatch):
        """set_level switches existing loggers and their handlers."""
        monkeypatch.setenv("PAGESNAP_DEBUG", "false")
        lg = get_logger("pagesnap.tests.set_level")
        set_level("DEBUG")
        try:
            assert lg.level == logging.DEBUG
            assert lg.handlers[0].level == logging.DEBUG
        finally:
            set_level("INFO")
