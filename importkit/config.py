"""
Import settings read from the environment.

A ``.env`` file in the working directory is loaded once before the first
lookup; variables already set in the process environment win.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from .converters import CULTURES, get_culture
from .schema import DEFAULT_MAX_PICTURES
from .segmenter import DEFAULT_BATCH_SIZE

DEFAULT_CULTURE = "en-US"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """Raised for configuration values that cannot be used."""


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    load_dotenv()


def _get_str_env(name: str, default: Optional[str] = None) -> Optional[str]:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped or default


def _get_int_env(name: str, default: int, minimum: int = 0) -> int:
    raw_value = _get_str_env(name)
    if raw_value is None:
        return default
    try:
        value = int(raw_value)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got '{raw_value}'") from e
    if value < minimum:
        raise ConfigError(f"{name} must be at least {minimum}, got {value}")
    return value


def _get_bool_env(name: str, default: bool) -> bool:
    raw_value = _get_str_env(name)
    if raw_value is None:
        return default
    lowered = raw_value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got '{raw_value}'")


@dataclass(frozen=True)
class ImportSettings:
    batch_size: int = DEFAULT_BATCH_SIZE
    culture: str = DEFAULT_CULTURE
    max_pictures: int = DEFAULT_MAX_PICTURES
    parallel_processors: bool = False
    database_url: Optional[str] = None


def load_import_settings() -> ImportSettings:
    """
    Read settings from the environment (uncached).

    Raises:
        ConfigError: If a variable holds an unusable value
    """
    culture = _get_str_env("IMPORTKIT_CULTURE", DEFAULT_CULTURE)
    try:
        culture = get_culture(culture).name
    except KeyError as e:
        raise ConfigError(
            f"IMPORTKIT_CULTURE '{culture}' is not supported. "
            f"Allowed values: {sorted(CULTURES)}."
        ) from e

    return ImportSettings(
        batch_size=_get_int_env("IMPORTKIT_BATCH_SIZE", DEFAULT_BATCH_SIZE, minimum=1),
        culture=culture,
        max_pictures=_get_int_env("IMPORTKIT_MAX_PICTURES", DEFAULT_MAX_PICTURES),
        parallel_processors=_get_bool_env("IMPORTKIT_PARALLEL_PROCESSORS", False),
        database_url=_get_str_env("IMPORTKIT_DB_URL") or _get_str_env("DATABASE_URL"),
    )


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """Cached settings. Call ``get_import_settings.cache_clear()`` after changing the environment."""
    return load_import_settings()
