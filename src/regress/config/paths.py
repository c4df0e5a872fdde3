"""Centralized path management for regress.

Artifacts, reports and logs live under a single base directory. The base
directory can be overridden with the REGRESS_HOME environment variable.

Default layout (relative to the working directory):
- ./.regress/screenshots
- ./.regress/reports
- ./.regress/logs
"""

import os
from pathlib import Path

ENV_VAR = "REGRESS_HOME"


def get_regress_home() -> Path:
    """Get the base directory for all regress data.

    Resolution order:
    1. REGRESS_HOME environment variable (if set)
    2. ./.regress in the current working directory

    Returns:
        Path to the regress home directory.
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.cwd() / ".regress"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_regress_home() / "config.toml"


def get_screenshots_path() -> Path:
    """Get the diagnostic artifact directory."""
    return get_regress_home() / "screenshots"


def get_reports_path() -> Path:
    """Get the report output directory."""
    return get_regress_home() / "reports"


def get_logs_path() -> Path:
    """Get the JSONL log directory."""
    return get_regress_home() / "logs"
