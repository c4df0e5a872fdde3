"""Types for the scenario lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from regress.errors import DriverUnresponsiveError

if TYPE_CHECKING:
    from regress.browser.types import Session
    from regress.diagnostics.types import DiagnosticArtifact


class ScenarioResult(Enum):
    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"
    ERRORED = "errored"


class LifecycleState(Enum):
    """Where a scenario is between Before and After.

    UNBOUND -> ACQUIRING -> BOUND -> COMPLETING -> RELEASED. RELEASED is
    terminal and re-entering After from it is a no-op.
    """

    UNBOUND = "unbound"
    ACQUIRING = "acquiring"
    BOUND = "bound"
    COMPLETING = "completing"
    RELEASED = "released"


@dataclass(slots=True)
class Scenario:
    """One executable test case."""

    name: str
    tags: tuple[str, ...] = ()
    started_at: datetime | None = None
    result: ScenarioResult = ScenarioResult.PENDING
    duration_seconds: float | None = None
    error: BaseException | None = None

    @property
    def is_failure(self) -> bool:
        return self.result in (ScenarioResult.FAILED, ScenarioResult.ERRORED)

    def mark_passed(self) -> None:
        if self.result is ScenarioResult.PENDING:
            self.result = ScenarioResult.PASSED

    def mark_failed(self, error: BaseException | None = None) -> None:
        if self.result is ScenarioResult.ERRORED:
            return
        self.result = ScenarioResult.FAILED
        if self.error is None:
            self.error = error

    def mark_errored(self, error: BaseException) -> None:
        self.result = ScenarioResult.ERRORED
        self.error = error


@dataclass(slots=True)
class ScenarioContext:
    """Per-scenario execution context handed to step code.

    ``lease`` is the reference the lifecycle owns and always releases.
    ``session`` is the handle steps may use; it becomes None once the
    session is found dead, while the lease stays so release happens once.
    """

    scenario: Scenario
    state: LifecycleState = LifecycleState.UNBOUND
    lease: Session | None = None
    usable: bool = False
    started_monotonic: float = 0.0
    artifacts: list[DiagnosticArtifact] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    console_logs: list[dict[str, Any]] = field(default_factory=list)

    @property
    def session(self) -> Session | None:
        if self.lease is None or not self.usable or self.lease.is_closed:
            return None
        return self.lease

    def require_session(self) -> Session:
        """Return the live handle or raise DriverUnresponsiveError."""
        session = self.session
        if session is None:
            raise DriverUnresponsiveError(
                f"No live session bound to scenario {self.scenario.name}"
            )
        return session

    def bind(self, session: Session) -> None:
        self.lease = session
        self.usable = True
        self.state = LifecycleState.BOUND

    def invalidate(self, note: str) -> None:
        """Drop the usable handle after a failed liveness probe."""
        self.usable = False
        self.notes.append(note)

