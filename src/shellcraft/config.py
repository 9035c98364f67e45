"""Configuration loading for the shellcraft CLI.

Values come from, in increasing priority: the YAML config file, then
environment variables (a .env file is loaded first).
"""

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional

import yaml
from dotenv import load_dotenv

from shellcraft.constants import (
    CONFIG_KEYS,
    DEFAULT_CONFIG_PATH,
    DEFAULT_LOCALE,
    SUPPORTED_LOCALES,
)

logger = logging.getLogger(__name__)


# Environment variable overriding each config key
ENV_OVERRIDES = {
    "base_url": "OPENAI_BASE_URL",
    "api_key": "OPENAI_API_KEY",
    "model": "OPENAI_MODEL",
    "locale": "SHELLCRAFT_LOCALE",
}

REQUIRED_KEYS = ("base_url", "api_key", "model")


@dataclass
class Config:
    """Backend and locale settings. Read-only once loaded."""

    base_url: str
    api_key: str
    model: str
    locale: str = DEFAULT_LOCALE


class ConfigError(Exception):
    """Raised when configuration is missing, unreadable or invalid."""
    pass


def resolve_config_path(path: Optional[Path] = None) -> Path:
    """Config file location: explicit path, $SHELLCRAFT_CONFIG, or the per-user default."""
    if path is not None:
        return Path(path).expanduser()
    return Path(os.environ.get("SHELLCRAFT_CONFIG", DEFAULT_CONFIG_PATH)).expanduser()


def read_config_file(path: Path) -> Dict[str, str]:
    """
    Read the raw key/value mapping stored in the config file.

    Returns an empty dict if the file does not exist.

    Raises:
        ConfigError: If the file cannot be read or is not a YAML mapping
    """
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse config file {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {path} must contain a mapping, got {type(data).__name__}"
        )

    unknown = sorted(set(data) - set(CONFIG_KEYS))
    if unknown:
        raise ConfigError(f"Unknown keys in config file {path}: {', '.join(unknown)}")

    return {k: "" if v is None else str(v) for k, v in data.items()}


def validate_locale(locale: str) -> str:
    if locale not in SUPPORTED_LOCALES:
        raise ConfigError(
            f"Invalid locale: {locale!r}. Supported: {', '.join(SUPPORTED_LOCALES)}"
        )
    return locale


def load_config(
    path: Optional[Path] = None,
    require_all: bool = True,
) -> Optional[Config]:
    """
    Load configuration from the config file and the environment.

    Args:
        path: Config file path (default: see resolve_config_path)
        require_all: If True, raises ConfigError if required values are missing.
                     If False, returns None for missing config.

    Returns:
        Config object if all required values present, None if require_all=False and missing.

    Raises:
        ConfigError: If the file is invalid, or require_all=True and values are missing.
    """
    load_dotenv()

    config_path = resolve_config_path(path)
    values = read_config_file(config_path)
    logger.debug("Loaded %d key(s) from %s", len(values), config_path)

    for key, env_name in ENV_OVERRIDES.items():
        env_value = os.environ.get(env_name)
        if env_value:
            values[key] = env_value

    missing = [key for key in REQUIRED_KEYS if not values.get(key)]
    if missing:
        if require_all:
            raise ConfigError(
                f"Missing required configuration: {', '.join(missing)}\n"
                f"Run 'shellcraft config {missing[0]}=...' or set "
                f"{', '.join(ENV_OVERRIDES[k] for k in missing)} in your environment."
            )
        return None

    return Config(
        base_url=values["base_url"],
        api_key=values["api_key"],
        model=values["model"],
        locale=validate_locale(values.get("locale") or DEFAULT_LOCALE),
    )


def write_config_file(values: Dict[str, str], path: Path) -> Path:
    """Write values as YAML, readable by the owner only."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(values, default_flow_style=False, allow_unicode=True),
        encoding="utf-8",
    )
    try:
        os.chmod(path, 0o600)
    except OSError as e:
        logger.debug("Could not restrict permissions on %s: %s", path, e)
    return path


def save_config(config: Config, path: Optional[Path] = None) -> Path:
    """Persist a full Config to the config file."""
    validate_locale(config.locale)
    return write_config_file(asdict(config), resolve_config_path(path))


def parse_config_pairs(pairs: Iterable[str]) -> Dict[str, str]:
    """
    Parse `key=value` items from the command line.

    Raises:
        ConfigError: On items without '=' or with unknown keys
    """
    updates = {}
    for pair in pairs:
        if "=" not in pair:
            raise ConfigError(f"Expected key=value, got: {pair!r}")
        key, value = pair.split("=", 1)
        key = key.strip()
        if key not in CONFIG_KEYS:
            raise ConfigError(
                f"Unknown config key: {key!r}. Valid keys: {', '.join(CONFIG_KEYS)}"
            )
        updates[key] = value.strip()

    if "locale" in updates:
        validate_locale(updates["locale"])
    return updates


def update_config(pairs: Iterable[str], path: Optional[Path] = None) -> Dict[str, str]:
    """
    Merge `key=value` items into the stored config file.

    Returns:
        The full mapping now stored on disk
    """
    config_path = resolve_config_path(path)
    updates = parse_config_pairs(pairs)

    values = read_config_file(config_path)
    values.update(updates)
    write_config_file(values, config_path)
    logger.debug("Updated %s in %s", ", ".join(sorted(updates)), config_path)

    return values


def mask_secret(value: Optional[str]) -> str:
    """Render a secret for display without revealing it."""
    if not value:
        return "[not set]"
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-4:]}"
