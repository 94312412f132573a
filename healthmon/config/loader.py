"""Configuration loader with YAML parsing and environment variable substitution."""

import os
import re
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..errors import ConfigurationError
from .models import MonitoringSystemConfig

DEFAULT_CONFIG_PATH = "config/config.yaml"
CONFIG_PATH_ENV = "HEALTHMON_CONFIG"

# ${NAME} or ${NAME:-fallback}
_ENV_PATTERN = re.compile(r'\$\{(\w+)(?::-([^}]*))?\}')


class ConfigLoader:
    """Load and validate health monitor configuration."""

    @staticmethod
    def resolve_path(config_path: Optional[str] = None) -> str:
        """
        Pick the configuration file to load.

        An explicit path wins, then the HEALTHMON_CONFIG environment
        variable, then ``config/config.yaml``.
        """
        return config_path or os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH

    @staticmethod
    def load_from_file(config_path: Optional[str] = None) -> MonitoringSystemConfig:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file (see resolve_path)

        Returns:
            MonitoringSystemConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            ConfigurationError: If the document is not a mapping
            pydantic.ValidationError: If configuration validation fails
        """
        config_file = Path(ConfigLoader.resolve_path(config_path))
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f)

        # An empty file means all defaults
        if raw_config is None:
            raw_config = {}
        return ConfigLoader.load_from_dict(raw_config)

    @staticmethod
    def load_from_dict(raw_config: Mapping[str, Any]) -> MonitoringSystemConfig:
        """Validate an already parsed configuration mapping."""
        if not isinstance(raw_config, Mapping):
            raise ConfigurationError(
                f"Configuration must be a mapping, got {type(raw_config).__name__}"
            )
        return MonitoringSystemConfig(**ConfigLoader._substitute_env_vars(dict(raw_config)))

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """
        Recursively replace ${VAR} and ${VAR:-default} placeholders.

        Unset variables without a default become empty strings, which the
        target validators then reject with a clear message.

        Args:
            obj: Object to process (str, dict, list, or primitive)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, str):
            return _ENV_PATTERN.sub(lambda m: os.getenv(m.group(1), m.group(2) or ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
