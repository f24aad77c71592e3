"""
Configuration loader module for the trading engine.

This module provides functionality to load configuration from YAML files
with proper error handling and validation.
"""
import yaml
from pathlib import Path
from typing import Any, Dict, Union


REQUIRED_SECTIONS = ("app", "bot", "trading", "market", "advisory", "persistence")


def load_config(path: Union[str, Path] = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the configuration file. Can be a string or Path object.
              Defaults to "config/config.yaml".

    Returns:
        Dictionary containing the configuration data.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        yaml.YAMLError: If the YAML file is invalid or cannot be parsed.
        ValueError: If the file is empty or a required section is missing.
    """
    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path.absolute()}")

    try:
        with open(config_path, 'r', encoding='utf-8') as file:
            config = yaml.safe_load(file)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Invalid YAML format in {config_path.absolute()}: {e}")

    if config is None:
        raise ValueError(f"Configuration file is empty: {config_path.absolute()}")
    if not isinstance(config, dict):
        raise ValueError(f"Configuration root must be a mapping: {config_path.absolute()}")

    missing = [section for section in REQUIRED_SECTIONS if section not in config]
    if missing:
        raise ValueError(f"Missing configuration sections {missing} in {config_path.absolute()}")

    return config
