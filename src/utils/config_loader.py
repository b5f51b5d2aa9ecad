import os
from typing import Optional

import yaml
from pydantic import ValidationError

from .config_schema import ConfigModel, default_config

# Overrides engine.path without editing the YAML file.
ENGINE_PATH_ENV = "ROOKUCI_ENGINE"


def load_config(config_path: Optional[str] = "configs/engine.yaml") -> dict:
    """Load and validate the YAML configuration file.

    Args:
        config_path: Path to the configuration file, or ``None`` to start
            from the built-in defaults.

    Returns:
        dict: The validated configuration with defaults applied. If
        ``ROOKUCI_ENGINE`` is set it replaces ``engine.path``.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        ValueError: If the configuration fails schema validation.
    """

    if config_path is None:
        config = default_config()
    else:
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found at: {config_path}")

        with open(config_path, "r") as f:
            raw_config = yaml.safe_load(f) or {}

        try:
            config = ConfigModel(**raw_config).model_dump()
        except (ValidationError, TypeError) as e:
            raise ValueError(f"Invalid configuration: {e}") from e

    engine_path = os.environ.get(ENGINE_PATH_ENV)
    if engine_path:
        config["engine"]["path"] = engine_path
    return config
