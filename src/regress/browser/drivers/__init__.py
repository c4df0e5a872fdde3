"""Browser driver implementations."""

from regress.browser.drivers.base import BrowserDriver, DriverFactory, ElementCapture

__all__ = ["BrowserDriver", "DriverFactory", "ElementCapture"]
