"""Simple YAML configuration loader for MeetScribe."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from ..errors import MissingCredentialError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "meetscribe.yaml"
DEFAULT_API_KEY_ENV = "OPENAI_API_KEY"

# Relative to the config file's directory
_PATH_KEYS = (
    ('google_cloud', 'credentials_path'),
    ('storage', 'data_directory'),
    ('logging', 'file_path'),
)


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Look for meetscribe.yaml in ``start`` (default: cwd) and its parents."""
    directory = (start or Path.cwd()).absolute()
    for candidate_dir in [directory, *directory.parents]:
        candidate = candidate_dir / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


class MeetScribeConfig:
    """MeetScribe configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, looks for meetscribe.yaml
                        in current directory and parent directories.
        """
        if config_path is None:
            found = find_config_file()
            if found is None:
                raise FileNotFoundError(f"Configuration file not found: {CONFIG_FILENAME} (searched from {Path.cwd()})")
            self.config_file = found
        else:
            self.config_file = Path(config_path)

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
            raise ValueError("Configuration file must contain a mapping of sections")

        self._resolve_paths(config)
        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        config_dir = self.config_file.parent
        for section, key in _PATH_KEYS:
            value = (config.get(section) or {}).get(key)
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'openai.model').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config
        for key in key_path.split('.'):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation."""
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_google_credentials_path(self) -> str:
        """Get Google credentials path.

        Raises:
            MissingCredentialError: If the path is not configured
            FileNotFoundError: If the configured file does not exist
        """
        creds_path = self.get('google_cloud.credentials_path')
        if not creds_path:
            raise MissingCredentialError(f"Google credentials path not configured in {CONFIG_FILENAME}")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())

    def get_openai_api_key(self) -> str:
        """Get the OpenAI API key from the config or the environment.

        Raises:
            MissingCredentialError: If no key is available
        """
        api_key = self.get('openai.api_key')
        if api_key:
            return api_key

        env_name = self.get('openai.api_key_env', DEFAULT_API_KEY_ENV)
        api_key = os.environ.get(env_name)
        if not api_key:
            raise MissingCredentialError(f"OpenAI API key not found. Set {env_name} or openai.api_key in {CONFIG_FILENAME}")
        return api_key

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())
