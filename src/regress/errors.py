"""Exceptions raised across the session lifecycle."""


class RegressError(Exception):
    """Base error for the harness."""


class SessionCreationError(RegressError):
    """Browser session could not be created or failed its first probe."""


class UnsupportedBrowserError(SessionCreationError):
    """Requested browser kind has no driver. Never retried."""

    def __init__(self, kind: str):
        super().__init__(f"Unsupported browser: {kind}")
        self.kind = kind


class SessionTimeoutError(RegressError):
    """Acquisition exceeded its wall-clock bound."""

    def __init__(self, timeout_seconds: float, attempts: int = 0):
        super().__init__(
            f"Driver initialization timeout after {timeout_seconds:g} seconds"
        )
        self.timeout_seconds = timeout_seconds
        self.attempts = attempts


class DriverUnresponsiveError(RegressError):
    """Liveness probe failed on a bound session."""


class ScreenshotError(RegressError):
    """Capture or persistence of a diagnostic artifact failed."""


class ScreenshotTimeoutError(ScreenshotError):
    """Capture exceeded its time bound."""


class MetricsError(RegressError):
    """Aggregation or report I/O failed."""


class CleanupError(RegressError):
    """Session shutdown failed."""


class ScenarioSetupError(RegressError):
    """Before hook could not bind a session; the scenario body must not run."""

    def __init__(self, scenario_name: str, cause: BaseException):
        super().__init__(
            f"Failed to initialize driver for scenario {scenario_name}: {cause}"
        )
        self.scenario_name = scenario_name
        self.cause = cause
