import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Stability API Configuration
STABILITY_API_KEY = os.getenv("STABILITY_API_KEY")
STABILITY_API_BASE_URL = os.getenv("STABILITY_API_BASE_URL", "https://api.stability.ai")
STABILITY_REQUEST_TIMEOUT = float(
    os.getenv("STABILITY_REQUEST_TIMEOUT", "60")
)  # seconds

# Logging Configuration
LOG_LEVEL = os.getenv("SDCLI_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("SDCLI_LOG_FILE", "")  # empty disables file logging

# Settings file location, defaults to ~/.config/sdcli/config.json
CONFIG_PATH = os.getenv("SDCLI_CONFIG_PATH", "")


class ConfigError(Exception):
    """Raised when the settings file cannot be read or parsed"""
    pass


@dataclass(frozen=True)
class Config:
    # The Stability API key to use for generating images.
    api_key: str = ""

    # Directory generated images are written to. Tilde and environment
    # variables are not expanded.
    output_directory: str = ""

    # Command run with the image path as its only argument after a successful
    # generation, e.g. "firefox" results in "firefox /path/to/image".
    post_generation_command: str = ""


def default_config_path() -> str:
    """Return the settings file path, honoring SDCLI_CONFIG_PATH"""
    if CONFIG_PATH:
        return CONFIG_PATH
    return str(Path.home() / ".config" / "sdcli" / "config.json")


def parse_config_file(config_path: str, api_key_override: Optional[str] = None) -> Config:
    """
    Parse the JSON settings file at config_path.

    Args:
        config_path (str): Path to the JSON file
        api_key_override (str): Takes precedence over the file's api_key when set,
            defaults to STABILITY_API_KEY from the environment

    Returns:
        Config: Parsed settings
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as e:
        raise ConfigError(f"failed to open configuration file {config_path!r}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"failed to parse JSON in configuration file {config_path!r}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"configuration file {config_path!r} must contain a JSON object")

    for key in ("api_key", "output_directory", "post_generation_command"):
        if key in raw and not isinstance(raw[key], str):
            raise ConfigError(f"{key} in configuration file {config_path!r} must be a string")

    if api_key_override is None:
        api_key_override = STABILITY_API_KEY

    return Config(
        api_key=api_key_override or raw.get("api_key", ""),
        output_directory=raw.get("output_directory", ""),
        post_generation_command=raw.get("post_generation_command", ""),
    )
