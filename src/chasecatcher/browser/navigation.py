"""Resilient page navigation with automatic wait-strategy fallback.

Banking dashboards rarely reach ``networkidle``: analytics beacons and
long-polling keep the network busy. This module wraps Playwright's
``page.goto`` / ``page.go_back`` with a fallback strategy: try the preferred
wait state first, then weaker ones on timeout.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Literal

from playwright.async_api import Error as PlaywrightError, Page, Response, TimeoutError as PlaywrightTimeout

from chasecatcher.exceptions import NavigationError

logger = logging.getLogger(__name__)

# Playwright error substrings that indicate non-retryable navigation failures.
_NON_RETRYABLE_ERRORS: tuple[str, ...] = (
    "ERR_NAME_NOT_RESOLVED",
    "ERR_CONNECTION_REFUSED",
    "ERR_CONNECTION_RESET",
    "ERR_CONNECTION_CLOSED",
    "ERR_INTERNET_DISCONNECTED",
    "ERR_SSL_PROTOCOL_ERROR",
    "ERR_CERT_AUTHORITY_INVALID",
    "ERR_ADDRESS_UNREACHABLE",
)

WaitUntil = Literal["commit", "domcontentloaded", "load", "networkidle"]

_FALLBACK_STRATEGY: list[WaitUntil] = ["networkidle", "load", "domcontentloaded"]


async def resilient_goto(
    page: Page,
    url: str,
    *,
    timeout_ms: int = 30_000,
    wait_until: WaitUntil = "networkidle",
) -> Response | None:
    """Navigate to *url* with automatic wait-strategy fallback.

    Args:
        page: Playwright page instance.
        url: Target URL to navigate to.
        timeout_ms: Timeout per attempt in milliseconds.
        wait_until: Preferred initial wait strategy.

    Returns:
        The main-frame ``Response``, or ``None``.

    Raises:
        NavigationError: On a non-retryable network failure.
        PlaywrightTimeout: If every fallback strategy times out.
    """

    async def _attempt(strategy: WaitUntil) -> Response | None:
        logger.debug("goto %s (wait_until=%s, timeout=%dms)", url, strategy, timeout_ms)
        return await page.goto(url, wait_until=strategy, timeout=timeout_ms)

    return await _with_fallback(_attempt, url, wait_until, "goto")


async def resilient_go_back(
    page: Page,
    *,
    timeout_ms: int = 15_000,
    wait_until: WaitUntil = "load",
) -> Response | None:
    """Navigate one step back in history with automatic wait-strategy fallback.

    Same fallback logic as :func:`resilient_goto` but for ``page.go_back``.
    Returns ``None`` when there is no history entry or the navigation stayed
    within the same document (hash routes).
    """

    async def _attempt(strategy: WaitUntil) -> Response | None:
        logger.debug("go_back (wait_until=%s, timeout=%dms)", strategy, timeout_ms)
        return await page.go_back(wait_until=strategy, timeout=timeout_ms)

    return await _with_fallback(_attempt, page.url, wait_until, "go_back")


async def _with_fallback(
    attempt: Callable[[WaitUntil], Awaitable[Any]],
    url: str,
    wait_until: WaitUntil,
    label: str,
) -> Any:
    last_error: PlaywrightTimeout | None = None
    for strategy in _build_fallback_chain(wait_until):
        try:
            return await attempt(strategy)
        except PlaywrightError as exc:
            error_msg = str(exc)
            for pattern in _NON_RETRYABLE_ERRORS:
                if pattern in error_msg:
                    reason = pattern.replace("ERR_", "").replace("_", " ").lower()
                    logger.warning("%s %s failed (non-retryable): %s", label, url, pattern)
                    raise NavigationError(url, reason) from exc
            if isinstance(exc, PlaywrightTimeout):
                logger.warning("%s %s timed out with wait_until=%s, retrying weaker", label, url, strategy)
                last_error = exc
            else:
                raise

    raise last_error  # type: ignore[misc]


def _build_fallback_chain(preferred: WaitUntil) -> list[WaitUntil]:
    """Return the fallback chain starting from *preferred*.

    If *preferred* is in the default chain, returns from that point onward.
    Otherwise returns ``[preferred]`` followed by the full default chain.
    """
    if preferred in _FALLBACK_STRATEGY:
        idx = _FALLBACK_STRATEGY.index(preferred)
        return _FALLBACK_STRATEGY[idx:]
    return [preferred, *_FALLBACK_STRATEGY]
