"""YAML configuration loader for minutetaker."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional, Type, TypeVar
import logging

from pydantic import BaseModel, ValidationError, model_validator

logger = logging.getLogger(__name__)

SectionT = TypeVar("SectionT", bound=BaseModel)


class AudioSettings(BaseModel):
    """Microphone capture settings."""
    sample_rate: int = 16000
    chunk_size: int = 1024
    channels: int = 1
    silence_threshold: float = 0.0005  # normalized peak below which a chunk is digital silence
    mute_after_seconds: float = 3.0
    tick_interval: float = 1.0


class CountdownSettings(BaseModel):
    """Countdown warning thresholds and extension choices, in seconds / minutes."""
    warning_seconds: int = 60
    urgent_seconds: int = 30
    high_pitch_seconds: int = 10
    break_seconds: int = 600
    durations: List[int] = [15, 30, 45]
    extend_options: List[int] = [15, 30, 45]

    @model_validator(mode="after")
    def _check_thresholds(self) -> "CountdownSettings":
        if not 0 < self.urgent_seconds < self.warning_seconds:
            raise ValueError("countdown.urgent_seconds must be positive and below warning_seconds")
        if self.high_pitch_seconds > self.urgent_seconds:
            raise ValueError("countdown.high_pitch_seconds must not exceed urgent_seconds")
        return self


class GenerationSettings(BaseModel):
    """Generative model settings."""
    api_key: str = ""
    model: str = "gemini-flash-latest"
    base_url: str = "https://generativelanguage.googleapis.com"
    ready_timeout: float = 120.0
    poll_interval: float = 2.0
    terminology: str = ""  # spelling rules for names and terms, added to every prompt


class DriveSettings(BaseModel):
    """Destination folders for saved minutes and audio."""
    minutes_folder_id: str = "root"
    audio_folder_id: str = "root"


class SpeechSettings(BaseModel):
    """Speaker diarization settings."""
    enabled: bool = False
    credentials_path: Optional[str] = None
    language_code: str = "ja-JP"
    max_speakers: int = 6


class MinutetakerConfig:
    """minutetaker configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. Defaults to minutetaker.yaml
                        in the current directory.
        """
        self.config_file = Path(config_path or "minutetaker.yaml")

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping")

        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (("speech", "credentials_path"),
                             ("auth", "token_path"),
                             ("storage", "data_directory"),
                             ("logging", "file_path")):
            value = (config.get(section) or {}).get(key)
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'generation.model').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'countdown.urgent_seconds')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def _section(self, name: str, model: Type[SectionT]) -> SectionT:
        try:
            return model(**(self.get(name) or {}))
        except ValidationError as e:
            raise ValueError(f"Invalid '{name}' configuration: {e}") from e

    def audio(self) -> AudioSettings:
        return self._section("audio", AudioSettings)

    def countdown(self) -> CountdownSettings:
        return self._section("countdown", CountdownSettings)

    def generation(self) -> GenerationSettings:
        """Generation settings; the API key may also come from GEMINI_API_KEY."""
        settings = self._section("generation", GenerationSettings)
        if not settings.api_key:
            settings.api_key = os.environ.get("GEMINI_API_KEY", "")
        return settings

    def drive(self) -> DriveSettings:
        return self._section("drive", DriveSettings)

    def speech(self) -> SpeechSettings:
        return self._section("speech", SpeechSettings)

    def get_token_path(self) -> Optional[str]:
        """Path to the OAuth authorized-user file, if configured."""
        return self.get('auth.token_path')

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())
