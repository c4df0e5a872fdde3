"""Screenshot capture and artifact housekeeping.

Every capture first checks the session is alive, races the actual capture
against ``capture_timeout_seconds`` and writes PNG bytes to
``{artifact_dir}/{sanitized_prefix}_{YYYY-MM-DD_HH-mm-ss-SSS}[_{suffix}].png``.
Failures surface as ScreenshotError subclasses; callers in hooks log and
swallow them.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles

from regress.browser.retry import with_timeout
from regress.browser.types import ProbeResult
from regress.diagnostics.types import (
    ArtifactKind,
    ComparisonArtifacts,
    DiagnosticArtifact,
    ScreenshotStats,
)
from regress.errors import (
    DriverUnresponsiveError,
    ScreenshotError,
    ScreenshotTimeoutError,
)

if TYPE_CHECKING:
    from regress.browser.drivers.base import ElementCapture
    from regress.browser.types import Session
    from regress.config.models import RegressConfig

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Prober = Callable[["Session"], Awaitable[ProbeResult]]

FULL_PAGE_DIMENSIONS_SCRIPT = """
() => ({
    width: Math.max(
        document.body.scrollWidth, document.body.offsetWidth,
        document.documentElement.clientWidth, document.documentElement.scrollWidth,
        document.documentElement.offsetWidth
    ),
    height: Math.max(
        document.body.scrollHeight, document.body.offsetHeight,
        document.documentElement.clientHeight, document.documentElement.scrollHeight,
        document.documentElement.offsetHeight
    )
})
"""

_NON_ALNUM = re.compile(r"[^a-z0-9]", re.IGNORECASE)
_REPEATED_UNDERSCORES = re.compile(r"_+")


def sanitize_filename(name: str) -> str:
    """Reduce ``name`` to lowercase ``[a-z0-9_]`` with single separators."""
    cleaned = _NON_ALNUM.sub("_", name)
    cleaned = _REPEATED_UNDERSCORES.sub("_", cleaned)
    return cleaned.strip("_").lower()


def format_timestamp(moment: datetime) -> str:
    """Format as ``YYYY-MM-DD_HH-mm-ss-SSS``."""
    return moment.strftime("%Y-%m-%d_%H-%M-%S-") + f"{moment.microsecond // 1000:03d}"


def _utc_now() -> datetime:
    return datetime.now(UTC)


async def _title_probe(session: Session) -> ProbeResult:
    if session.is_closed:
        return ProbeResult.dead("session closed")
    try:
        return ProbeResult.alive(await session.driver.title())
    except Exception as e:
        return ProbeResult.dead(e)


class DiagnosticCapture:
    """Persists screenshots tied to a scenario."""

    def __init__(
        self,
        artifact_dir: Path,
        *,
        capture_timeout_seconds: float = 10.0,
        full_page_settle_seconds: float = 0.5,
        comparison_settle_seconds: float = 1.0,
        clock: Clock = _utc_now,
        prober: Prober | None = None,
    ) -> None:
        self._artifact_dir = artifact_dir
        self._capture_timeout_seconds = capture_timeout_seconds
        self._full_page_settle_seconds = full_page_settle_seconds
        self._comparison_settle_seconds = comparison_settle_seconds
        self._clock = clock
        self._prober = prober or _title_probe
        self._ensure_directory()

    @property
    def artifact_dir(self) -> Path:
        return self._artifact_dir

    def _ensure_directory(self) -> None:
        try:
            self._artifact_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(
                "screenshot_dir_create_failed",
                extra={"file.path": str(self._artifact_dir), "error.message": str(e)},
            )

    def generate_filename(
        self,
        prefix: str = "screenshot",
        suffix: str | None = None,
        *,
        moment: datetime | None = None,
    ) -> str:
        """Build an artifact filename stamped with ``moment``.

        ``moment`` defaults to the injected clock, so the name is
        deterministic for a fixed clock and inputs.
        """
        if moment is None:
            moment = self._clock()
        clean_prefix = sanitize_filename(prefix) or "screenshot"
        clean_suffix = f"_{sanitize_filename(suffix)}" if suffix else ""
        return f"{clean_prefix}_{format_timestamp(moment)}{clean_suffix}.png"

    async def _ensure_alive(self, session: Session | None) -> Session:
        if session is None:
            raise DriverUnresponsiveError("No session available for screenshot")
        result = await self._prober(session)
        if not result.ok:
            raise DriverUnresponsiveError(f"Driver is not responsive: {result.error}")
        return session

    async def _capture(self, grab: Awaitable[bytes], name: str) -> bytes:
        timeout = self._capture_timeout_seconds
        try:
            return await with_timeout(
                grab,
                timeout,
                on_timeout=lambda: ScreenshotTimeoutError(
                    f"Screenshot timeout after {timeout:g}s: {name}"
                ),
            )
        except ScreenshotError:
            raise
        except Exception as e:
            raise ScreenshotError(f"Screenshot capture failed for {name}: {e}") from e

    async def _persist(
        self,
        content: bytes,
        *,
        name: str,
        kind: ArtifactKind,
        scenario_name: str | None,
        extra: dict[str, Any] | None = None,
    ) -> DiagnosticArtifact:
        timestamp = self._clock()
        filename = self.generate_filename(name, moment=timestamp)
        path = self._artifact_dir / filename
        try:
            self._artifact_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            raise ScreenshotError(f"Failed to write screenshot {path}: {e}") from e

        artifact = DiagnosticArtifact(
            filename=filename,
            path=path,
            timestamp=timestamp,
            kind=kind,
            scenario_name=scenario_name,
            size=len(content),
        )
        logger.info(
            "screenshot_saved",
            extra={
                "file.path": str(path),
                "screenshot.kind": kind.value,
                "screenshot.size": artifact.size,
                "scenario.name": scenario_name,
                **(extra or {}),
            },
        )
        return artifact

    async def take_screenshot(
        self,
        session: Session | None,
        name: str = "screenshot",
        *,
        kind: ArtifactKind = ArtifactKind.MANUAL,
        scenario_name: str | None = None,
    ) -> DiagnosticArtifact:
        """Capture the current viewport.

        Raises:
            DriverUnresponsiveError: The session failed its liveness check.
            ScreenshotTimeoutError: Capture exceeded the time bound.
            ScreenshotError: Capture or write failed.
        """
        try:
            live = await self._ensure_alive(session)
            content = await self._capture(live.driver.screenshot(), name)
            return await self._persist(
                content, name=name, kind=kind, scenario_name=scenario_name
            )
        except Exception as e:
            logger.error(
                "screenshot_failed",
                extra={
                    "screenshot.name": name,
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                },
            )
            raise

    async def take_element_screenshot(
        self,
        session: Session | None,
        element: ElementCapture,
        name: str = "element_screenshot",
        *,
        scenario_name: str | None = None,
    ) -> DiagnosticArtifact:
        """Capture a single element (locator or element handle)."""
        try:
            await self._ensure_alive(session)
            content = await self._capture(element.screenshot(), name)
            return await self._persist(
                content,
                name=name,
                kind=ArtifactKind.ELEMENT,
                scenario_name=scenario_name,
            )
        except Exception as e:
            logger.error(
                "element_screenshot_failed",
                extra={"screenshot.name": name, "error.message": str(e)},
            )
            raise

    async def take_full_page_screenshot(
        self,
        session: Session | None,
        name: str = "fullpage_screenshot",
        *,
        scenario_name: str | None = None,
    ) -> DiagnosticArtifact:
        """Resize the viewport to the document extents, settle, then capture."""
        try:
            live = await self._ensure_alive(session)
            dimensions = await live.driver.evaluate(FULL_PAGE_DIMENSIONS_SCRIPT)
            width = int(dimensions["width"])
            height = int(dimensions["height"])
            await live.driver.set_viewport_size(width, height)
            await asyncio.sleep(self._full_page_settle_seconds)
            content = await self._capture(live.driver.screenshot(), name)
            return await self._persist(
                content,
                name=name,
                kind=ArtifactKind.FULL_PAGE,
                scenario_name=scenario_name,
                extra={"screenshot.width": width, "screenshot.height": height},
            )
        except (ScreenshotError, DriverUnresponsiveError) as e:
            logger.error(
                "fullpage_screenshot_failed",
                extra={"screenshot.name": name, "error.message": str(e)},
            )
            raise
        except Exception as e:
            # Script evaluation or viewport resize failed
            logger.error(
                "fullpage_screenshot_failed",
                extra={"screenshot.name": name, "error.message": str(e)},
            )
            raise ScreenshotError(
                f"Full page screenshot failed for {name}: {e}"
            ) from e

    async def take_comparison_screenshots(
        self,
        session: Session | None,
        action: Callable[[], Awaitable[Any]] | None,
        name: str = "comparison",
        *,
        after_action: Callable[[], Awaitable[Any]] | None = None,
        scenario_name: str | None = None,
    ) -> ComparisonArtifacts:
        """Capture before ``action``, run it, settle, and capture again."""
        before = await self.take_screenshot(
            session,
            f"{name}_before",
            kind=ArtifactKind.COMPARISON,
            scenario_name=scenario_name,
        )
        if action is not None:
            await action()
        await asyncio.sleep(self._comparison_settle_seconds)
        after = await self.take_screenshot(
            session,
            f"{name}_after",
            kind=ArtifactKind.COMPARISON,
            scenario_name=scenario_name,
        )
        if after_action is not None:
            await after_action()

        logger.info(
            "comparison_screenshots_taken",
            extra={"file.before": str(before.path), "file.after": str(after.path)},
        )
        return ComparisonArtifacts(before=before, after=after)

    def _screenshots(self) -> list[Path]:
        if not self._artifact_dir.exists():
            return []
        return [
            p
            for p in self._artifact_dir.iterdir()
            if p.is_file() and p.suffix == ".png"
        ]

    def cleanup_old_screenshots(self, max_age_days: float = 7) -> int:
        """Delete artifacts last written before ``now - max_age_days``.

        Returns:
            Number of files deleted.
        """
        cutoff = self._clock() - timedelta(days=max_age_days)
        deleted = 0
        for path in self._screenshots():
            try:
                modified_at = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
                if modified_at < cutoff:
                    path.unlink()
                    deleted += 1
            except OSError as e:
                logger.warning(
                    "screenshot_cleanup_skipped",
                    extra={"file.path": str(path), "error.message": str(e)},
                )

        if deleted:
            logger.info(
                "screenshots_pruned",
                extra={
                    "screenshot.deleted": deleted,
                    "screenshot.max_age_days": max_age_days,
                },
            )
        return deleted

    def get_screenshot_stats(self) -> ScreenshotStats:
        screenshots = self._screenshots()
        total = 0
        for path in screenshots:
            try:
                total += path.stat().st_size
            except OSError:
                continue
        return ScreenshotStats(
            count=len(screenshots),
            total_size=total,
            directory=self._artifact_dir,
        )


def create_diagnostic_capture(
    config: RegressConfig,
    *,
    prober: Prober | None = None,
    clock: Clock = _utc_now,
) -> DiagnosticCapture:
    """Create a capture helper wired from configuration."""
    return DiagnosticCapture(
        config.paths.artifacts_dir,
        capture_timeout_seconds=config.hooks.screenshot_timeout_seconds,
        full_page_settle_seconds=config.hooks.full_page_settle_seconds,
        comparison_settle_seconds=config.hooks.comparison_settle_seconds,
        clock=clock,
        prober=prober,
    )
