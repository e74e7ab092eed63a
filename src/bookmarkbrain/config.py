"""Configuration management."""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .models.config import AppConfig, EnvSettings

CONFIG_DIR_ENV = "BOOKMARKBRAIN_CONFIG_DIR"


class ConfigError(Exception):
    """Configuration-related error."""

    pass


class ConfigManager:
    """Manages application configuration from .env and config.yaml."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_dir: Configuration directory path. Defaults to ~/.bookmarkbrain
        """
        if config_dir is None:
            env_config_dir = os.environ.get(CONFIG_DIR_ENV)
            if env_config_dir:
                config_dir = Path(env_config_dir)
            else:
                config_dir = Path.home() / '.bookmarkbrain'

        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / 'config.yaml'
        self.env_file = self.config_dir / '.env'

    def load_env_settings(self) -> EnvSettings:
        """Load environment settings from .env file.

        Returns:
            EnvSettings instance

        Raises:
            ConfigError: If .env file is missing or invalid
        """
        if not self.env_file.exists():
            raise ConfigError(
                f".env file not found at {self.env_file}. "
                f"Run 'bookmarkbrain init' to create configuration."
            )

        load_dotenv(self.env_file)

        try:
            return EnvSettings(_env_file=self.env_file)
        except Exception as e:
            raise ConfigError(f"Invalid .env file: {e}") from e

    def load_app_config(self) -> AppConfig:
        """Load application configuration from config.yaml.

        Returns:
            AppConfig instance

        Raises:
            ConfigError: If config file is missing or invalid
        """
        if not self.config_file.exists():
            raise ConfigError(
                f"Config file not found at {self.config_file}. "
                f"Run 'bookmarkbrain init' to create configuration."
            )

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)

            if data is None:
                data = {}

            return AppConfig(**data)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}") from e
        except Exception as e:
            raise ConfigError(f"Failed to load config: {e}") from e

    def save_app_config(self, config: AppConfig) -> None:
        """Save application configuration to config.yaml.

        Raises:
            ConfigError: If save fails
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)

            data = config.model_dump(mode='json')

            with open(self.config_file, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

        except Exception as e:
            raise ConfigError(f"Failed to save config: {e}") from e

    def create_env_file(self, google_api_key: Optional[str] = None) -> None:
        """Create .env file with API credentials.

        Args:
            google_api_key: Gemini API key (placeholder written if omitted)

        Raises:
            ConfigError: If file creation fails
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)

            env_content = f"""# Gemini API key used for summarization
GOOGLE_API_KEY={google_api_key or 'your-google-api-key-here'}
"""

            with open(self.env_file, 'w', encoding='utf-8') as f:
                f.write(env_content)

            # Set restrictive permissions on Unix-like systems
            if os.name != 'nt':
                os.chmod(self.env_file, 0o600)

        except Exception as e:
            raise ConfigError(f"Failed to create .env file: {e}") from e

    def resolve_storage_path(self, config: AppConfig) -> Path:
        """Directory holding the bookmark store for this configuration."""
        if config.storage_path:
            return Path(config.storage_path).expanduser()
        return self.config_dir / 'storage'

    def validate_storage_access(self, config: AppConfig) -> None:
        """Validate the storage directory is usable.

        Raises:
            ConfigError: If storage is not accessible
        """
        path = self.resolve_storage_path(config)

        if not path.exists():
            raise ConfigError(f"Storage path does not exist: {path}")

        if not path.is_dir():
            raise ConfigError(f"Storage path is not a directory: {path}")

        if not os.access(path, os.R_OK):
            raise ConfigError(f"Storage path is not readable: {path}")

        if not os.access(path, os.W_OK):
            raise ConfigError(f"Storage path is not writable: {path}")


def configure_logging(level: str) -> None:
    """Configure root logging for CLI commands."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
