"""Session manager: creates, probes and releases browser sessions."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from regress.browser.retry import RetryPolicy, with_retry, with_timeout
from regress.browser.types import (
    LivenessState,
    ProbeResult,
    Session,
    SessionStats,
    utc_now,
)
from regress.errors import (
    CleanupError,
    SessionCreationError,
    SessionTimeoutError,
    UnsupportedBrowserError,
)

if TYPE_CHECKING:
    from regress.browser.drivers.base import BrowserDriver, DriverFactory
    from regress.config.models import BrowserOptions, RegressConfig

logger = logging.getLogger(__name__)


def _is_retryable(error: Exception) -> bool:
    return not isinstance(error, UnsupportedBrowserError)


class SessionManager:
    """Owns every browser session from creation to release.

    Creation attempts are retried under ``policy`` and the whole acquisition
    races ``timeout_seconds``; whichever trips first decides the outcome. A
    liveness-probe failure right after creation discards that driver and
    consumes one attempt.
    """

    def __init__(
        self,
        *,
        factory: DriverFactory,
        policy: RetryPolicy | None = None,
        timeout_seconds: float = 30.0,
        probe_timeout_seconds: float = 10.0,
        close_timeout_seconds: float = 10.0,
        ci: bool = False,
    ) -> None:
        self._factory = factory
        self._policy = policy or RetryPolicy()
        self._timeout_seconds = timeout_seconds
        self._probe_timeout_seconds = probe_timeout_seconds
        self._close_timeout_seconds = close_timeout_seconds
        self._ci = ci
        self._live: dict[str, Session] = {}
        self._stats = SessionStats()

    @property
    def stats(self) -> SessionStats:
        return self._stats

    @property
    def live_sessions(self) -> tuple[Session, ...]:
        return tuple(self._live.values())

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def acquire(self, options: BrowserOptions) -> Session:
        """Create a fresh, probed session.

        Raises:
            UnsupportedBrowserError: Immediately, for an unknown browser kind.
            SessionCreationError: When every attempt failed.
            SessionTimeoutError: When the wall-clock bound expired first.
        """
        if options.engine is None:
            logger.error(
                "session_acquire_unsupported_browser",
                extra={"browser.kind": options.kind},
            )
            raise UnsupportedBrowserError(options.kind)

        logger.info(
            "session_acquire_started",
            extra={
                "browser.kind": options.kind,
                "browser.headless": options.headless,
                "acquire.max_attempts": self._policy.max_attempts,
                "acquire.timeout_s": self._timeout_seconds,
            },
        )

        attempts = 0

        async def attempt() -> Session:
            nonlocal attempts
            attempts += 1
            return await self._create_session(options, attempt=attempts)

        try:
            session = await with_timeout(
                with_retry(
                    attempt,
                    self._policy,
                    should_retry=_is_retryable,
                    operation_name="session.create",
                ),
                self._timeout_seconds,
                on_timeout=lambda: SessionTimeoutError(self._timeout_seconds, attempts),
            )
        except (SessionCreationError, SessionTimeoutError) as e:
            logger.error(
                "session_acquire_failed",
                extra={
                    "browser.kind": options.kind,
                    "acquire.attempts": attempts,
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                },
            )
            raise

        self._live[session.id] = session
        self._stats.acquired += 1
        logger.info(
            "session_acquired",
            extra={
                "session.id": session.id,
                "browser.kind": session.browser,
                "acquire.attempts": session.attempts,
            },
        )
        return session

    async def _create_session(
        self, options: BrowserOptions, *, attempt: int
    ) -> Session:
        try:
            driver = await self._factory.create(options, ci=self._ci)
        except UnsupportedBrowserError:
            raise
        except Exception as e:
            self._stats.failed_attempts += 1
            raise SessionCreationError(
                f"Failed to create {options.kind} driver: {e}"
            ) from e

        try:
            await driver.set_timeouts(
                implicit_ms=options.implicit_wait_ms,
                page_load_ms=options.page_timeout_ms,
            )
            probe = await self._probe_driver(driver)
            if not probe.ok:
                raise SessionCreationError(
                    f"Liveness probe failed after creation: {probe.error}"
                )
            if not options.headless:
                await self._maximize(driver)
        except BaseException as e:
            # Includes cancellation by the acquisition timeout
            self._stats.failed_attempts += 1
            await self._discard(driver)
            if isinstance(e, Exception) and not isinstance(e, SessionCreationError):
                raise SessionCreationError(
                    f"Failed to prepare {options.kind} driver: {e}"
                ) from e
            raise

        return Session(
            id=str(uuid.uuid4()),
            browser=options.kind,
            headless=options.headless,
            page_timeout_ms=options.page_timeout_ms,
            implicit_wait_ms=options.implicit_wait_ms,
            driver=driver,
            attempts=attempt,
        )

    async def _maximize(self, driver: BrowserDriver) -> None:
        try:
            await driver.maximize()
        except Exception as e:
            logger.warning(
                "session_maximize_failed",
                extra={"browser.kind": driver.name, "error.message": str(e)},
            )

    async def _probe_driver(self, driver: BrowserDriver) -> ProbeResult:
        try:
            title = await with_timeout(driver.title(), self._probe_timeout_seconds)
        except Exception as e:
            return ProbeResult.dead(e if str(e) else type(e).__name__)
        return ProbeResult.alive(title)

    async def _discard(self, driver: BrowserDriver) -> None:
        try:
            await with_timeout(driver.close(), self._close_timeout_seconds)
        except Exception as e:
            logger.warning(
                "session_discard_failed",
                extra={"browser.kind": driver.name, "error.message": str(e)},
            )

    async def probe(self, session: Session) -> ProbeResult:
        """Check that ``session`` still answers a minimal read.

        A failed probe is the only transition to UNRESPONSIVE.
        """
        if session.is_closed:
            return ProbeResult.dead("session closed")
        result = await self._probe_driver(session.driver)
        if not result.ok:
            session.state = LivenessState.UNRESPONSIVE
            session.last_error = result.error
            logger.warning(
                "session_unresponsive",
                extra={"session.id": session.id, "error.message": result.error},
            )
        return result

    async def release(self, session: Session | None) -> None:
        """Shut ``session`` down. Safe to call any number of times.

        Never raises: shutdown failures are logged so they cannot mask the
        scenario outcome that preceded them.
        """
        if session is None or session.is_closed:
            return

        session.state = LivenessState.CLOSED
        session.released_at = utc_now()
        self._live.pop(session.id, None)
        self._stats.released += 1

        try:
            await with_timeout(
                session.driver.close(),
                self._close_timeout_seconds,
                on_timeout=lambda: CleanupError(
                    f"driver close timed out after {self._close_timeout_seconds:g}s"
                ),
            )
        except Exception as e:
            session.last_error = str(e)
            logger.error(
                "session_release_failed",
                extra={
                    "session.id": session.id,
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                },
            )
            return
        logger.info("session_released", extra={"session.id": session.id})

    async def restart(
        self, session: Session | None, options: BrowserOptions
    ) -> Session:
        """Release ``session`` (if any) and acquire a replacement."""
        await self.release(session)
        return await self.acquire(options)

    async def shutdown(self) -> None:
        """Release every session still tracked by this manager."""
        leaked = self.live_sessions
        if leaked:
            logger.warning(
                "session_manager_releasing_leftovers",
                extra={"session.count": len(leaked)},
            )
        for session in leaked:
            await self.release(session)


def create_session_manager(
    config: RegressConfig,
    *,
    factory: DriverFactory | None = None,
) -> SessionManager:
    """Create a session manager wired from configuration."""
    if factory is None:
        from regress.browser.drivers.playwright import PlaywrightDriverFactory

        factory = PlaywrightDriverFactory()

    acquisition = config.acquisition
    return SessionManager(
        factory=factory,
        policy=RetryPolicy(
            max_attempts=acquisition.max_attempts,
            delay_seconds=acquisition.retry_delay_seconds,
            backoff_factor=acquisition.backoff_factor,
            max_delay_seconds=acquisition.max_delay_seconds,
        ),
        timeout_seconds=acquisition.timeout_seconds,
        probe_timeout_seconds=acquisition.probe_timeout_seconds,
        close_timeout_seconds=acquisition.close_timeout_seconds,
        ci=config.run.ci,
    )
