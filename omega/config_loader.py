"""Configuration loading and management."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from .config_models import SystemConfig


class ConfigLoadError(Exception):
    """Raised when configuration loading or validation fails."""


DEFAULT_CONFIG_PATH = Path("omega.yml")


def load_config(config_path: Optional[Path] = None) -> SystemConfig:
    """
    Load and validate system configuration.

    Args:
        config_path: Path to the configuration file. Defaults to ./omega.yml

    Returns:
        Validated SystemConfig instance

    Raises:
        ConfigLoadError: If configuration loading or validation fails
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    config_data: dict = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Failed to parse YAML config: {e}") from e
        except OSError as e:
            raise ConfigLoadError(f"Failed to read config file: {e}") from e

    if not isinstance(config_data, dict):
        raise ConfigLoadError(f"Configuration root must be a mapping, got {type(config_data).__name__}")

    # Environment variables win over the file
    _merge(config_data, _load_env_overrides())

    try:
        return SystemConfig(**config_data)
    except ValidationError as e:
        raise ConfigLoadError(f"Configuration validation failed: {e}") from e


def _merge(target: dict, overrides: dict) -> None:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = value


def _load_env_overrides() -> dict:
    """Load configuration overrides from environment variables."""
    overrides: dict = {}

    env_mappings = {
        "OMEGA_LOG_LEVEL": ("logging", "level"),
        "OMEGA_LOG_DIR": ("paths", "log_dir"),
        "OMEGA_OUTPUT_DIR": ("paths", "frames_dir"),
        "OMEGA_COMMAND": ("recording", "command"),
        "OMEGA_WORKERS": ("browser", "workers"),
        "OMEGA_SERVER_PORT": ("server", "port"),
    }

    for env_var, config_path in env_mappings.items():
        value = os.getenv(env_var)
        if value is not None:
            current = overrides
            for key in config_path[:-1]:
                if key not in current:
                    current[key] = {}
                current = current[key]
            current[config_path[-1]] = value

    return overrides


def create_example_config(output_path: Path = Path("omega.yml.example")) -> None:
    """Create an example configuration file."""
    example_config = {
        "recording": {
            "command": "/bin/bash",
            "cwd": str(Path.home()),
            "env": {"TERM": "xterm-256color"},
            "cols": "auto",
            "rows": "auto",
            "repeat": 0,
            "quality": 100,
            "frameDelay": "auto",
            "maxIdleTimeout": 2000,
            "cursorStyle": "block",
            "fontFamily": "Monaco, Lucida Console, Ubuntu Mono, Monospace",
            "fontSize": 12,
            "lineHeight": 1,
            "letterSpacing": 0
        },
        "shell": {
            "min_delay": 5,
            "output_path": "recording.yml"
        },
        "browser": {
            "width": 1920,
            "height": 1080,
            "fps": 60,
            "workers": 4,
            "duration_ms": 5000,
            "headless": True
        },
        "server": {
            "port": 38080,
            "script_path": "animation.js"
        },
        "paths": {
            "log_dir": "logs",
            "frames_dir": "frames"
        },
        "logging": {
            "level": "INFO"
        }
    }

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        yaml.dump(example_config, f, default_flow_style=False, sort_keys=False)
