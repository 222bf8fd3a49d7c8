"""Page surface — the narrow DOM interface the automation agent works against.

The agent never touches Playwright directly. It talks to a ``PageSurface``
and the ``ElementRef`` handles it returns, which keeps the loop testable
against an in-memory page and keeps Playwright error types out of the loop.

``PlaywrightSurface`` is the production implementation. Every Playwright
error is translated into ``SurfaceClosedError`` (the page is gone) or
``DomQueryError`` (anything else, usually a navigation race).
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Protocol, runtime_checkable

from playwright.async_api import ElementHandle, Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeout

from chasecatcher.browser.navigation import resilient_go_back
from chasecatcher.exceptions import DomQueryError, SurfaceClosedError

logger = logging.getLogger(__name__)

_CLOSEST_JS = "(el, selector) => el.closest(selector)"
_DOM_CLICK_JS = "el => el.click()"


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class ElementRef(Protocol):
    """A live element on the page."""

    async def closest(self, selector: str) -> ElementRef | None:
        """Return the nearest ancestor (or self) matching *selector*."""
        ...

    async def query(self, selector: str) -> ElementRef | None:
        """Return the first descendant matching *selector*."""
        ...

    async def attribute(self, name: str) -> str | None:
        """Return an attribute value, or ``None`` when absent."""
        ...

    async def text(self) -> str | None:
        """Return the element's text content."""
        ...

    async def click(self) -> None:
        """Click the element."""
        ...


@runtime_checkable
class PageSurface(Protocol):
    """The page the agent operates on."""

    @property
    def url(self) -> str:
        """Current page address."""
        ...

    def is_closed(self) -> bool:
        """Return ``True`` once the page has been closed."""
        ...

    async def query(self, selector: str) -> ElementRef | None:
        """Return the first element matching *selector*."""
        ...

    async def query_all(self, selector: str) -> list[ElementRef]:
        """Return all elements matching *selector* in DOM order."""
        ...

    async def go_back(self) -> None:
        """Navigate one step back in history."""
        ...


# ---------------------------------------------------------------------------
# Playwright implementation
# ---------------------------------------------------------------------------


@contextmanager
def _translate_errors(page: Page, operation: str) -> Iterator[None]:
    try:
        yield
    except PlaywrightError as exc:
        if page.is_closed():
            raise SurfaceClosedError(page.url) from exc
        reason = (str(exc).strip().splitlines() or ["unknown error"])[0]
        raise DomQueryError(operation, reason) from exc


class PlaywrightElement:
    """``ElementRef`` backed by a Playwright ``ElementHandle``."""

    __slots__ = ("_handle", "_page", "_action_timeout_ms")

    def __init__(self, handle: ElementHandle, page: Page, action_timeout_ms: int = 5_000) -> None:
        self._handle = handle
        self._page = page
        self._action_timeout_ms = action_timeout_ms

    @property
    def handle(self) -> ElementHandle:
        """Return the underlying Playwright handle."""
        return self._handle

    def _wrap(self, handle: ElementHandle | None) -> PlaywrightElement | None:
        if handle is None:
            return None
        return PlaywrightElement(handle, self._page, self._action_timeout_ms)

    async def closest(self, selector: str) -> PlaywrightElement | None:
        with _translate_errors(self._page, f"closest({selector})"):
            js_handle = await self._handle.evaluate_handle(_CLOSEST_JS, selector)
            return self._wrap(js_handle.as_element())

    async def query(self, selector: str) -> PlaywrightElement | None:
        with _translate_errors(self._page, f"query({selector})"):
            return self._wrap(await self._handle.query_selector(selector))

    async def attribute(self, name: str) -> str | None:
        with _translate_errors(self._page, f"attribute({name})"):
            return await self._handle.get_attribute(name)

    async def text(self) -> str | None:
        with _translate_errors(self._page, "text"):
            return await self._handle.text_content()

    async def click(self) -> None:
        """Click natively; fall back to a DOM ``click()`` if Playwright times out.

        Offer buttons are sometimes covered by a sticky banner, which makes
        Playwright's actionability checks time out even though the DOM
        handler would fire fine.
        """
        with _translate_errors(self._page, "click"):
            try:
                await self._handle.click(timeout=self._action_timeout_ms)
            except PlaywrightTimeout:
                logger.debug("Native click timed out, dispatching DOM click")
                await self._handle.evaluate(_DOM_CLICK_JS)


class PlaywrightSurface:
    """``PageSurface`` backed by an async Playwright ``Page``.

    Args:
        page: The Playwright page showing the rewards site.
        action_timeout_ms: Timeout for element clicks.
        navigation_timeout_ms: Timeout per history-navigation attempt.
    """

    def __init__(self, page: Page, action_timeout_ms: int = 5_000, navigation_timeout_ms: int = 15_000) -> None:
        self._page = page
        self._action_timeout_ms = action_timeout_ms
        self._navigation_timeout_ms = navigation_timeout_ms

    @classmethod
    def from_settings(cls, page: Page) -> PlaywrightSurface:
        """Build a surface with timeouts from the browser settings."""
        from chasecatcher.settings import get_settings

        browser = get_settings().browser
        return cls(page, browser.action_timeout_ms, browser.navigation_timeout_ms)

    @property
    def page(self) -> Page:
        """Return the underlying Playwright page."""
        return self._page

    @property
    def url(self) -> str:
        return self._page.url

    def is_closed(self) -> bool:
        return self._page.is_closed()

    async def query(self, selector: str) -> PlaywrightElement | None:
        with _translate_errors(self._page, f"query({selector})"):
            handle = await self._page.query_selector(selector)
        if handle is None:
            return None
        return PlaywrightElement(handle, self._page, self._action_timeout_ms)

    async def query_all(self, selector: str) -> list[ElementRef]:
        with _translate_errors(self._page, f"query_all({selector})"):
            handles = await self._page.query_selector_all(selector)
        return [PlaywrightElement(h, self._page, self._action_timeout_ms) for h in handles]

    async def go_back(self) -> None:
        with _translate_errors(self._page, "go_back"):
            await resilient_go_back(self._page, timeout_ms=self._navigation_timeout_ms)
