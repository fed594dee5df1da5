"""Tests for settings and logging configuration."""

import json
import logging

import pytest
from pydantic import ValidationError

from chatkeep.config import JSONFormatter, Settings, configure_logging, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch, tmp_path):
        """Defaults match the stored document keys and UI strings."""
        monkeypatch.chdir(tmp_path)
        settings = Settings()
        assert settings.legacy_storage_key == "chat-messages"
        assert settings.conversations_storage_key == "chat-conversations-v1"
        assert settings.new_chat_title == "New chat"
        assert settings.migrated_chat_title == "First chat"
        assert settings.untitled_chat_title == "Untitled chat"
        assert settings.title_max_length == 40
        assert settings.max_message_length == 2000
        assert settings.storage_path.name == "storage.json"

    def test_env_override(self, monkeypatch, tmp_path):
        """CHATKEEP_ variables override defaults."""
        monkeypatch.setenv("CHATKEEP_STORAGE_PATH", str(tmp_path / "s.json"))
        monkeypatch.setenv("CHATKEEP_TITLE_MAX_LENGTH", "12")
        monkeypatch.setenv("chatkeep_welcome_message", "Hello!")
        settings = get_settings()
        assert settings.storage_path == tmp_path / "s.json"
        assert settings.title_max_length == 12
        assert settings.welcome_message == "Hello!"

    def test_get_settings_cached(self):
        """get_settings returns one shared instance."""
        assert get_settings() is get_settings()

    def test_log_level_normalized(self):
        """Log level is upper-cased."""
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        """Unknown log levels are rejected."""
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD")

    def test_invalid_log_format(self):
        """Only text and json formats are accepted."""
        with pytest.raises(ValidationError):
            Settings(log_format="xml")

    def test_title_length_positive(self):
        """A zero title length is rejected."""
        with pytest.raises(ValidationError):
            Settings(title_max_length=0)


class TestLogging:
    """Tests for logging configuration."""

    def test_json_formatter_extra_fields(self):
        """Structured fields passed through extra are emitted."""
        record = logging.LogRecord("chatkeep.test", logging.INFO, __file__, 1, "Created %s", ("c1",), None)
        record.conversation_id = "c1"
        record.operation = "create"
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "Created c1"
        assert data["level"] == "INFO"
        assert data["conversation_id"] == "c1"
        assert data["operation"] == "create"
        assert "storage_key" not in data

    def test_configure_logging_json(self):
        """configure_logging installs a single handler with the chosen format."""
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging("warning", "json")
            assert root.level == logging.WARNING
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
            for handler in saved_handlers:
                root.addHandler(handler)
            root.setLevel(saved_level)
