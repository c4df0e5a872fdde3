"""Configuration module."""

from regress.config.loader import (
    find_config_path,
    get_default_config,
    load_config,
)
from regress.config.models import (
    AcquisitionConfig,
    BrowserOptions,
    ChromeConfig,
    ConfigError,
    FirefoxConfig,
    HooksConfig,
    MetricsConfig,
    PathsConfig,
    RegressConfig,
    RunConfig,
    build_browser_config,
)
from regress.config.paths import (
    get_config_path,
    get_logs_path,
    get_regress_home,
    get_reports_path,
    get_screenshots_path,
)

__all__ = [
    "find_config_path",
    "AcquisitionConfig",
    "BrowserOptions",
    "ChromeConfig",
    "ConfigError",
    "FirefoxConfig",
    "HooksConfig",
    "MetricsConfig",
    "PathsConfig",
    "RegressConfig",
    "RunConfig",
    "build_browser_config",
    "get_config_path",
    "get_default_config",
    "get_logs_path",
    "get_regress_home",
    "get_reports_path",
    "get_screenshots_path",
    "load_config",
]
