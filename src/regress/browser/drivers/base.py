"""Driver interface for browser sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from regress.config.models import BrowserOptions


class BrowserDriver(Protocol):
    """Minimal capability set the lifecycle needs from a live browser.

    Drivers may additionally expose ``console_logs()``; callers look it up
    with ``getattr`` because support varies by browser.
    """

    name: str

    async def title(self) -> str: ...

    async def screenshot(self) -> bytes: ...

    async def evaluate(self, script: str) -> Any: ...

    async def set_viewport_size(self, width: int, height: int) -> None: ...

    async def maximize(self) -> None: ...

    async def set_timeouts(self, *, implicit_ms: int, page_load_ms: int) -> None: ...

    async def close(self) -> None: ...


@runtime_checkable
class ElementCapture(Protocol):
    """Anything that can screenshot itself (a locator or element handle)."""

    async def screenshot(self) -> bytes: ...


class DriverFactory(Protocol):
    """Creates one driver per call; never pools or reuses processes."""

    async def create(
        self, options: BrowserOptions, *, ci: bool = False
    ) -> BrowserDriver: ...
