"""Configuration loading from TOML files and environment variables."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from regress.config.models import ConfigError, RegressConfig
from regress.config.paths import get_config_path

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "on"}


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("regress.toml"),  # Current directory
        get_config_path(),  # $REGRESS_HOME/config.toml
    ]


def find_config_path() -> Path | None:
    """Return the first existing default config file, if any."""
    for default_path in _get_default_config_paths():
        expanded = default_path.expanduser()
        if expanded.exists():
            return expanded
    return None


def _section(config: dict[str, Any], key: str) -> dict[str, Any]:
    section = config.get(key)
    if not isinstance(section, dict):
        section = {}
        config[key] = section
    return section


def _env_int(env_var: str) -> int | None:
    raw = os.environ.get(env_var)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning(
            "config_env_value_invalid",
            extra={"config.env_var": env_var, "config.value": raw},
        )
        return None


def _env_bool(env_var: str) -> bool | None:
    raw = os.environ.get(env_var)
    if raw is None:
        return None
    return raw.strip().lower() in TRUTHY


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Overlay environment variables onto raw config."""
    browser = _section(config, "browser")
    if name := os.environ.get("BROWSER_NAME"):
        browser["kind"] = name.strip().lower()
    if (headless := _env_bool("HEADLESS")) is not None:
        browser["headless"] = headless
    if (timeout := _env_int("BROWSER_TIMEOUT")) is not None:
        browser["page_timeout_ms"] = timeout
    if (implicit := _env_int("IMPLICIT_WAIT")) is not None:
        browser["implicit_wait_ms"] = implicit

    run = _section(config, "run")
    simple_mappings = [
        ("environment", "TEST_ENV"),
        ("build_number", "BUILD_NUMBER"),
        ("git_branch", "GIT_BRANCH"),
    ]
    for key, env_var in simple_mappings:
        if value := os.environ.get(env_var):
            run[key] = value
    if (ci := _env_bool("CI")) is not None:
        run["ci"] = ci

    if (port := _env_int("METRICS_PORT")) is not None:
        _section(config, "metrics")["port"] = port

    return config


def load_config(path: Path | None = None) -> RegressConfig:
    """Load configuration from TOML and environment.

    Args:
        path: Explicit path to config file. If None, searches default
            locations and falls back to defaults when none exists.

    Returns:
        Validated RegressConfig instance.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ConfigError: If the file is not valid TOML or fails validation.
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        config_path = find_config_path()

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        try:
            with config_path.open("rb") as f:
                raw_config = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    raw_config = _apply_env_overrides(raw_config)

    try:
        return RegressConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def get_default_config() -> RegressConfig:
    """Get a default configuration for development/testing."""
    return RegressConfig()
