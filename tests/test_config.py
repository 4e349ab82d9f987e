"""
Tests for configuration loading and saving.
"""

import json
import pytest

from meetmind.core import config as config_module
from meetmind.core.config import AppConfig, ConfigManager


@pytest.fixture
def config_dir(temp_dir, monkeypatch):
    monkeypatch.setattr(config_module, "get_config_dir", lambda: temp_dir)
    monkeypatch.setattr(ConfigManager, "_instance", None)
    monkeypatch.setattr(ConfigManager, "_config", None)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    return temp_dir


def test_defaults():
    config = AppConfig()
    assert config.recording_time_limit_seconds == 600.0
    assert config.audio_mime_types[0] == "audio/webm;codecs=opus"
    assert config.recording_language == "en-US"
    assert config.analysis_language == "en"


def test_missing_file_uses_defaults(config_dir):
    manager = ConfigManager()
    assert manager.config == AppConfig()
    assert manager.get_storage_directory() == config_dir / "recordings"
    assert manager.get_export_directory() == config_dir / "exports"


def test_singleton(config_dir):
    assert ConfigManager() is ConfigManager()


def test_loads_saved_values(config_dir):
    (config_dir / "config.json").write_text(json.dumps({
        "recording_time_limit_seconds": 120,
        "storage_directory": str(config_dir / "elsewhere"),
    }))

    manager = ConfigManager()
    assert manager.config.recording_time_limit_seconds == 120
    assert manager.get_storage_directory() == config_dir / "elsewhere"


def test_corrupt_file_falls_back_to_defaults(config_dir):
    (config_dir / "config.json").write_text("{not json")
    assert ConfigManager().config == AppConfig()


def test_set_storage_directory_persists(config_dir):
    manager = ConfigManager()
    manager.set_storage_directory(str(config_dir / "recs"))

    saved = json.loads((config_dir / "config.json").read_text())
    assert saved["storage_directory"] == str(config_dir / "recs")
    assert saved["is_first_run"] is False
    assert not manager.is_first_run()


def test_api_key_env_fallback(config_dir, monkeypatch):
    manager = ConfigManager()
    assert manager.get_anthropic_api_key() is None

    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-env")
    assert manager.get_anthropic_api_key() == "sk-env"

    manager.set_anthropic_api_key("sk-config")
    assert manager.get_anthropic_api_key() == "sk-config"
