"""chasecatcher exception hierarchy."""

from __future__ import annotations

from chasecatcher.models.messages import WRONG_PAGE_ERROR


class CatcherError(Exception):
    """Base exception for all chasecatcher errors."""


class WrongSurfaceError(CatcherError):
    """Raised when the page does not expose a recognized offer region."""

    def __init__(self, url: str = "") -> None:
        self.url = url
        super().__init__(WRONG_PAGE_ERROR)


class TransportUnavailableError(CatcherError):
    """Raised when a command could not be delivered or no reply arrived.

    Attributes:
        action: The command action that failed.
        reason: Short description of the transport failure.
    """

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(f"Command {action!r} not delivered: {reason}")


class ElementMissingError(CatcherError):
    """Raised when an expected control vanished between discovery and click."""

    def __init__(self, identity: str, element: str) -> None:
        self.identity = identity
        self.element = element
        super().__init__(f"{element} not found for offer {identity}")


class DomQueryError(CatcherError):
    """Raised when a DOM query or interaction fails on a live page."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} failed: {reason}")


class SurfaceClosedError(CatcherError):
    """Raised when the page backing a surface has been closed."""

    def __init__(self, url: str = "") -> None:
        self.url = url
        super().__init__(f"Page closed: {url}" if url else "Page closed")


class NavigationError(CatcherError):
    """Raised for non-retryable navigation failures (DNS, refused, SSL)."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Navigation to {url} failed: {reason}")
