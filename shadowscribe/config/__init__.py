"""Simple YAML configuration loader for ShadowScribe."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from pydantic import ValidationError

from ..transcription.session import SessionSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "shadowscribe.yaml"
DEFAULT_API_KEY_ENV = "ASSEMBLYAI_API_KEY"


class ShadowScribeConfig:
    """ShadowScribe configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, uses shadowscribe.yaml
                        in the current directory.
        """
        self.config_file = Path(config_path or DEFAULT_CONFIG_FILE)

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
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}")

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping")

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        if 'storage' in config and 'data_directory' in config['storage']:
            data_dir = config['storage']['data_directory']
            if not os.path.isabs(data_dir):
                config['storage']['data_directory'] = str(config_dir / data_dir)

        if 'logging' in config and 'file_path' in config['logging']:
            log_path = config['logging']['file_path']
            if not os.path.isabs(log_path):
                config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'streaming.sample_rate').

        Args:
            key_path: Dot-separated key path (e.g., 'auth.token_endpoint')
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
            key_path: Dot-separated path to config value (e.g., 'streaming.sample_rate')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_session_settings(self) -> SessionSettings:
        """Get validated streaming session settings.

        The streaming sample rate follows audio.sample_rate unless set explicitly.
        """
        streaming = dict(self.get('streaming', {}) or {})
        streaming.setdefault('sample_rate', self.get('audio.sample_rate', 16000))
        try:
            return SessionSettings(**streaming)
        except ValidationError as e:
            raise ValueError(f"Invalid streaming configuration: {e}")

    def get_token_endpoint(self) -> str:
        """Get token endpoint URL - CRASHES if not configured."""
        endpoint = self.get('auth.token_endpoint')
        if not endpoint:
            raise ValueError("Token endpoint not configured in shadowscribe.yaml (auth.token_endpoint)")
        return endpoint

    def get_api_key(self) -> Optional[str]:
        """Get the vendor API key from the environment variable named in auth.api_key_env."""
        env_name = self.get('auth.api_key_env', DEFAULT_API_KEY_ENV)
        return os.environ.get(env_name)

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())
