"""
Configuration management for imgs3.

Handles loading, merging, discovery and persistence of YAML configuration
files.
"""
import importlib.resources as importlib_resources
import os
from typing import Optional

import yaml

USER_CONFIG_FILE = "imgs3.config.yaml"


class ConfigManager:
    """Manages imgs3 configuration loading and merging operations."""

    def load_config(self, path: str) -> dict:
        """Load configuration from YAML file."""
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}

    def save_config(self, path: str, config: dict) -> None:
        """Write configuration back to a YAML file."""
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)

    def deep_merge(self, default: dict, user: dict) -> dict:
        """Deep merge user config into default config."""
        result = default.copy()
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self.deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def load_package_default_config(self) -> dict:
        """Load default config from package."""
        import imgs3.config
        default_config_path = importlib_resources.files(imgs3.config) / 'default.yaml'
        with default_config_path.open('r') as f:
            return yaml.safe_load(f)

    def load_and_merge_config(self, user_config_path: str) -> dict:
        """Load user config and merge with package default."""
        default_config = self.load_package_default_config()
        user_config = self.load_config(user_config_path)
        return self.deep_merge(default_config, user_config)

    def discover_config_path(self, config_arg: Optional[str]) -> Optional[str]:
        """Return the user config file in effect, if any."""

        # Priority 1: --config argument
        if config_arg:
            if os.path.exists(config_arg):
                return config_arg
            raise FileNotFoundError(f"Config file not found: {config_arg}")

        # Priority 2: imgs3.config.yaml in current directory
        if os.path.exists(USER_CONFIG_FILE):
            return USER_CONFIG_FILE

        # Priority 3: package default only
        return None

    def discover_and_load_config(self, config_arg: Optional[str]) -> dict:
        """Discover config file with priority order."""
        path = self.discover_config_path(config_arg)
        if path:
            return self.load_and_merge_config(path)
        return self.load_package_default_config()
