"""Application configuration management"""

import json
import os
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field
from loguru import logger


class AppConfig(BaseModel):
    """Application configuration"""

    # Where recordings are stored (None = <config dir>/recordings)
    storage_directory: Optional[str] = None

    # Where print-style (PDF) exports are written (None = <config dir>/exports)
    export_directory: Optional[str] = None

    # Recording limits
    recording_time_limit_seconds: float = 600.0  # hard ceiling, 10 minutes
    remaining_time_tick_seconds: float = 1.0  # how often remaining time is recomputed
    chunk_interval_seconds: float = 1.0  # how often captured audio is flushed into chunks

    # Encoding preference, most preferred first. Falls back to the device default.
    audio_mime_types: List[str] = Field(default_factory=lambda: [
        "audio/webm;codecs=opus",
        "audio/ogg;codecs=opus",
        "audio/mp4",
    ])

    # Audio settings
    audio_sample_rate: int = 44100
    audio_channels: int = 1  # mono for speech
    audio_device_index: Optional[int] = None  # None = system default input

    # Language defaults
    recording_language: str = "en-US"
    analysis_language: str = "en"
    base_language: str = "en"  # language transcripts are assumed to be in

    # Live captioning (best-effort preview while recording)
    live_captions_enabled: bool = True
    caption_model: str = "small"
    caption_buffer_seconds: float = 3.0

    # Final transcription (faster-whisper)
    transcription_model: str = "large-v3"
    transcription_device: str = "cpu"  # cpu or cuda
    transcription_compute_type: str = "int8"  # int8 for cpu, float16 for cuda

    # Claude settings
    claude_model: str = "claude-opus-4-5-20251101"
    anthropic_api_key: Optional[str] = None

    # Logging
    log_level: str = "DEBUG"

    # First run flag
    is_first_run: bool = True


def get_config_dir() -> Path:
    """Get the application config directory"""
    import sys

    if sys.platform == "win32":
        config_dir = Path.home() / "AppData" / "Local" / "MeetMind"
    elif sys.platform == "darwin":
        config_dir = Path.home() / "Library" / "Application Support" / "MeetMind"
    else:
        config_dir = Path.home() / ".config" / "MeetMind"

    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Get the config file path"""
    return get_config_dir() / "config.json"


class ConfigManager:
    """Singleton config manager"""

    _instance: Optional["ConfigManager"] = None
    _config: Optional[AppConfig] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._config is None:
            self._config = self._load_config()

    def _load_config(self) -> AppConfig:
        """Load config from file or create default"""
        config_path = get_config_path()

        if config_path.exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                logger.info(f"Loaded config from {config_path}")
                return AppConfig(**data)
            except Exception as e:
                logger.warning(f"Failed to load config: {e}, using defaults")
                return AppConfig()
        else:
            logger.info("No config file found, using defaults")
            return AppConfig()

    def save(self):
        """Save config to file"""
        config_path = get_config_path()

        try:
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(self._config.model_dump(), f, indent=2)
            logger.info(f"Saved config to {config_path}")
        except Exception as e:
            logger.error(f"Failed to save config: {e}")

    @property
    def config(self) -> AppConfig:
        """Get the current config"""
        return self._config

    def set_storage_directory(self, path: str):
        """Set the directory recordings are stored in"""
        self._config.storage_directory = path
        self._config.is_first_run = False
        self.save()

    def get_storage_directory(self) -> Path:
        """Get the recordings directory, defaulting to one inside the config dir"""
        if self._config.storage_directory:
            return Path(self._config.storage_directory)
        return get_config_dir() / "recordings"

    def get_export_directory(self) -> Path:
        """Get the directory printed reports are written to"""
        if self._config.export_directory:
            return Path(self._config.export_directory)
        return get_config_dir() / "exports"

    def get_anthropic_api_key(self) -> Optional[str]:
        """API key from config, falling back to the ANTHROPIC_API_KEY environment variable"""
        return self._config.anthropic_api_key or os.environ.get("ANTHROPIC_API_KEY")

    def set_anthropic_api_key(self, api_key: Optional[str]):
        self._config.anthropic_api_key = api_key
        self.save()

    def is_first_run(self) -> bool:
        """Check if this is the first run"""
        return self._config.is_first_run


def get_config_manager() -> ConfigManager:
    """Get the singleton config manager"""
    return ConfigManager()
