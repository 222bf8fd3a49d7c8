"""Controller bridge — relays panel commands to the agent and agent events back.

The bridge runs outside the page. It resolves the active surface, checks it
is the expected rewards site, forwards ``start``/``stop``/``getStatus`` over
the ``MessageChannel``, and turns every outcome into a ``PanelState`` pushed
to ``on_change``. It never retries; a failed command simply leaves the
panel in an error view until the user acts again.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable
from urllib.parse import urlsplit

from pydantic import BaseModel, ValidationError

from chasecatcher.exceptions import TransportUnavailableError
from chasecatcher.models.messages import (
    COMPLETE,
    ERROR,
    PROGRESS,
    START,
    STATUS,
    STOP,
    WRONG_PAGE_ERROR,
    Command,
    Reply,
)
from chasecatcher.settings.config import SiteSettings

logger = logging.getLogger(__name__)

READY_TEXT = "Ready to catch some rewards!"
RUNNING_TEXT = "Catching rewards..."
PAUSED_TEXT = "Paused - Ready to continue!"
COMPLETE_TEXT = "Great job! All rewards caught!"
OPEN_PAGE_TEXT = "Error: Please open the offers page"
NOT_READY_TEXT = "Error: Agent not ready. Please refresh the page."
NAVIGATE_TEXT = "Error: Please navigate to the offers page"
FAILED_TEXT = "Error: Command failed. Please try again."


class PanelView(str, Enum):
    """Views the control panel can show."""

    READY = "ready"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETE = "complete"
    ERROR = "error"
    WRONG_PAGE = "wrong_page"
    NOT_READY = "not_ready"


class PanelState(BaseModel):
    """What the control panel should display."""

    view: PanelView = PanelView.READY
    message: str = READY_TEXT
    progress: int = 0
    start_enabled: bool = True


def _failure_text(reply: Reply) -> str:
    return f"Error: {reply.error}" if reply.error else FAILED_TEXT


def is_expected_site(url: str | None, site: SiteSettings) -> bool:
    """Return ``True`` if *url* is on the configured rewards site.

    The host must equal the configured domain or be a subdomain of it, so
    ``secure.chase.com`` matches ``chase.com`` but ``chase.com.evil.io``
    does not.
    """
    if not url:
        return False
    parts = urlsplit(url)
    if site.require_https and parts.scheme != "https":
        return False
    if parts.scheme not in ("http", "https"):
        return False

    host = (parts.hostname or "").lower().rstrip(".")
    domain = site.domain.lower().strip(".")
    if host != domain and not host.endswith("." + domain):
        return False

    if site.path_prefixes:
        target = parts.path + ("#" + parts.fragment if parts.fragment else "")
        return any(target.startswith(prefix) for prefix in site.path_prefixes)
    return True


class ControllerBridge:
    """Control-panel side of the command channel.

    Args:
        channel: Channel connected to the agent.
        surface_url: Returns the active surface's URL, or ``None`` when there
            is no surface to talk to.
        site: Expected site (default: from settings).
        on_change: Called with every new ``PanelState``.
    """

    def __init__(
        self,
        channel: Any,
        surface_url: Callable[[], str | None],
        site: SiteSettings | None = None,
        on_change: Callable[[PanelState], None] | None = None,
    ) -> None:
        if site is None:
            from chasecatcher.settings import get_settings

            site = get_settings().site

        self._channel = channel
        self._surface_url = surface_url
        self._site = site
        self._on_change = on_change
        self._state = PanelState()
        self._attached = False

    @property
    def state(self) -> PanelState:
        """Return the current panel state."""
        return self._state

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start(self) -> PanelState:
        """Ask the agent to start catching offers."""
        reply = await self._dispatch(START)
        if reply is None:
            return self._state
        if not reply.success:
            if reply.error == WRONG_PAGE_ERROR:
                return self._set(PanelView.WRONG_PAGE, NAVIGATE_TEXT)
            return self._set(PanelView.ERROR, _failure_text(reply))
        return self._set(PanelView.RUNNING, RUNNING_TEXT, start_enabled=False, progress=0)

    async def stop(self) -> PanelState:
        """Ask the agent to stop after its in-flight step."""
        reply = await self._dispatch(STOP)
        if reply is None:
            return self._state
        if not reply.success:
            return self._set(PanelView.ERROR, _failure_text(reply))
        return self._set(PanelView.PAUSED, PAUSED_TEXT)

    async def attach(self) -> PanelState:
        """Subscribe to agent events and probe the agent's current status."""
        if not self._attached:
            self._channel.subscribe(self)
            self._attached = True

        if not is_expected_site(self._surface_url(), self._site):
            return self._set(PanelView.WRONG_PAGE, OPEN_PAGE_TEXT)

        try:
            raw = await self._channel.request(Command(action=STATUS).to_payload())
            reply = Reply.model_validate(raw)
        except (TransportUnavailableError, ValidationError) as exc:
            logger.warning("Status probe failed: %s", exc)
            return self._set(PanelView.READY, READY_TEXT)

        if reply.is_running:
            return self._set(PanelView.RUNNING, RUNNING_TEXT, start_enabled=False)
        return self._set(PanelView.READY, READY_TEXT)

    def detach(self) -> None:
        """Stop receiving agent events."""
        if self._attached:
            self._channel.unsubscribe(self)
            self._attached = False

    async def _dispatch(self, action: str) -> Reply | None:
        """Send *action*; on failure set the error view and return ``None``."""
        if not is_expected_site(self._surface_url(), self._site):
            logger.info("Not on the offers page; %s not sent", action)
            self._set(PanelView.WRONG_PAGE, OPEN_PAGE_TEXT)
            return None

        try:
            raw = await self._channel.request(Command(action=action).to_payload())
        except TransportUnavailableError as exc:
            logger.warning("%s", exc)
            self._set(PanelView.NOT_READY, NOT_READY_TEXT)
            return None

        try:
            return Reply.model_validate(raw)
        except ValidationError:
            logger.warning("Unexpected reply to %s: %r", action, raw)
            self._set(PanelView.NOT_READY, NOT_READY_TEXT)
            return None

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Apply an agent event to the panel."""
        action = event.get("action")
        if action == PROGRESS:
            progress = event.get("progress")
            if isinstance(progress, int):
                self._set(self._state.view, self._state.message, progress=progress)
        elif action == COMPLETE:
            self._set(PanelView.COMPLETE, COMPLETE_TEXT, start_enabled=True)
        elif action == ERROR:
            self._set(PanelView.ERROR, f"Error: {event.get('error') or 'unknown error'}", start_enabled=True)
        else:
            logger.debug("Ignoring event %r", action)

    def _set(
        self,
        view: PanelView,
        message: str,
        *,
        start_enabled: bool | None = None,
        progress: int | None = None,
    ) -> PanelState:
        if start_enabled is None:
            start_enabled = view is not PanelView.RUNNING
        self._state = PanelState(
            view=view,
            message=message,
            progress=self._state.progress if progress is None else progress,
            start_enabled=start_enabled,
        )
        if self._on_change is not None:
            self._on_change(self._state)
        return self._state
