"""Browser subsystem.

Public API:
- SessionManager: Acquire/probe/release browser sessions
- create_session_manager: Factory for manager wiring
- RetryPolicy, with_retry, with_timeout: Acquisition combinators

Types:
- Session, LivenessState, ProbeResult, SessionStats
"""

from regress.browser.manager import SessionManager, create_session_manager
from regress.browser.retry import RetryPolicy, with_retry, with_timeout
from regress.browser.types import LivenessState, ProbeResult, Session, SessionStats

__all__ = [
    "SessionManager",
    "create_session_manager",
    "RetryPolicy",
    "with_retry",
    "with_timeout",
    "LivenessState",
    "ProbeResult",
    "Session",
    "SessionStats",
]
