"""
Configuration loading for the cyclic arbitrage engine.
"""

import os
from typing import Any, Dict

import yaml
from pydantic import ValidationError as PydanticValidationError

from .config_schema import ArbitrageConfig
from .exceptions import ConfigurationError


def config_from_dict(config_dict: Dict[str, Any]) -> ArbitrageConfig:
    """
    Validate a configuration mapping.

    Raises:
        ConfigurationError: If the mapping does not satisfy the schema
    """
    if not isinstance(config_dict, dict):
        raise ConfigurationError("Config must be a dictionary")
    try:
        return ArbitrageConfig.model_validate(config_dict)
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}", details={"errors": e.errors()}
        ) from e


def load_config(config_path: str) -> ArbitrageConfig:
    """
    Load and validate config from YAML file.

    Args:
        config_path: Path to config YAML file

    Returns:
        Validated ArbitrageConfig instance

    Raises:
        ConfigurationError: If config invalid, unparsable or not found
    """
    if not os.path.exists(config_path):
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML: {e}") from e

    if not isinstance(config_dict, dict):
        raise ConfigurationError("Config file must contain a YAML dictionary")

    config = config_from_dict(config_dict)

    # Relative data paths resolve against the config file's directory
    base_dir = os.path.dirname(os.path.abspath(config_path))
    updates = {}
    for key in ("snapshot_path", "tax_overrides_path"):
        value = getattr(config, key)
        if value and not os.path.isabs(value):
            updates[key] = os.path.join(base_dir, value)
    return config.model_copy(update=updates) if updates else config
