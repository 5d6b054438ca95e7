"""
Configuration loader (TOML).

Stores defaults for the replication server, timeouts and retries.
Uses Pydantic for validation.
"""

from pathlib import Path
import tomllib

from pydantic import ValidationError

from .models import LocatorConfigModel

LocatorConfig = LocatorConfigModel

# Shipped defaults, relative to the project root rather than the working directory
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "defaults.toml"


def load_config(config_path: Path | None = None) -> LocatorConfig:
    """
    Loads and validates the configuration from a TOML file.

    A missing file is not an error: the built-in defaults are used so the
    tool runs from any directory.

    Args:
        config_path: Path to the configuration file (usually defaults.toml).

    Returns:
        A validated LocatorConfig object.

    Raises:
        ValueError: If the file is not valid TOML or has invalid values.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return LocatorConfig()

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid configuration file {path}: {e}") from e

    # Settings may live at the top level or under a [locator] table
    section = data.get("locator", data)
    try:
        return LocatorConfig(**section)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration file {path}: {e}") from e
