"""Public types for the browser subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from regress.browser.drivers.base import BrowserDriver


def utc_now() -> datetime:
    return datetime.now(UTC)


class LivenessState(Enum):
    """Liveness of a session as last observed."""

    HEALTHY = "healthy"
    UNRESPONSIVE = "unresponsive"
    CLOSED = "closed"


@dataclass(slots=True)
class Session:
    """One live browser process bound to a single scenario."""

    id: str
    browser: str
    headless: bool
    page_timeout_ms: int
    implicit_wait_ms: int
    driver: BrowserDriver
    state: LivenessState = LivenessState.HEALTHY
    attempts: int = 1
    created_at: datetime = field(default_factory=utc_now)
    released_at: datetime | None = None
    last_error: str | None = None

    @property
    def is_closed(self) -> bool:
        return self.state is LivenessState.CLOSED

    @property
    def is_healthy(self) -> bool:
        return self.state is LivenessState.HEALTHY


@dataclass(slots=True, frozen=True)
class ProbeResult:
    """Outcome of a liveness probe."""

    ok: bool
    title: str | None = None
    error: str | None = None

    @classmethod
    def alive(cls, title: str | None) -> ProbeResult:
        return cls(ok=True, title=title)

    @classmethod
    def dead(cls, error: BaseException | str) -> ProbeResult:
        return cls(ok=False, error=str(error))


@dataclass(slots=True)
class SessionStats:
    """Acquisition/release bookkeeping for a manager."""

    acquired: int = 0
    released: int = 0
    failed_attempts: int = 0

    @property
    def live(self) -> int:
        return self.acquired - self.released
