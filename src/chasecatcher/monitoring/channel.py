"""Message channel — connects the controller bridge to the automation agent.

Two kinds of traffic share one channel:

* Commands (bridge → agent) use request/response: ``request`` awaits the
  agent handler's reply dict, bounded by a timeout.
* Events (agent → bridge) are fire-and-forget: ``publish`` fans an event out
  to every subscribed listener.

Payloads are plain JSON-like dicts (see ``chasecatcher.models.messages``).
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

from chasecatcher.exceptions import TransportUnavailableError

logger = logging.getLogger(__name__)

CommandHandler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


# ---------------------------------------------------------------------------
# Listener protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class EventListener(Protocol):
    """Protocol for event consumers.

    Implementations may update a control panel, write JSONL, log, or
    collect events in memory for testing.
    """

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Process a single event."""
        ...


# ---------------------------------------------------------------------------
# Built-in listeners
# ---------------------------------------------------------------------------


class LoggingListener:
    """Emit events to the Python logger at DEBUG level."""

    def __init__(self, logger_name: str = "chasecatcher.events") -> None:
        self._logger = logging.getLogger(logger_name)

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Log the event."""
        self._logger.debug("%s: %s", event.get("action", "?"), json.dumps(event, default=str)[:200])


class InMemoryListener:
    """Collect events in a list — useful for testing."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Append the event to the in-memory list."""
        self.events.append(event)

    def of(self, action: str) -> list[dict[str, Any]]:
        """Return the collected events with the given action."""
        return [e for e in self.events if e.get("action") == action]

    def clear(self) -> None:
        """Clear all collected events."""
        self.events.clear()

    @property
    def count(self) -> int:
        """Return the number of collected events."""
        return len(self.events)


class JsonlListener:
    """Write events as JSON lines to a file-like object.

    Works with ``sys.stdout``, ``sys.stderr``, or an open file handle.
    """

    def __init__(self, stream: Any) -> None:
        self._stream = stream

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Write one JSON line to the stream."""
        self._stream.write(json.dumps(event, default=str) + "\n")
        if hasattr(self._stream, "flush"):
            self._stream.flush()


# ---------------------------------------------------------------------------
# Channel
# ---------------------------------------------------------------------------


class MessageChannel:
    """In-process command/event channel between bridge and agent.

    Args:
        request_timeout_ms: How long ``request`` waits for a reply.
    """

    def __init__(self, request_timeout_ms: int = 5_000) -> None:
        self._request_timeout = request_timeout_ms / 1000
        self._handler: CommandHandler | None = None
        self._listeners: list[EventListener] = []

    @classmethod
    def from_settings(cls) -> MessageChannel:
        """Build a channel using the configured request timeout."""
        from chasecatcher.settings import get_settings

        return cls(request_timeout_ms=get_settings().channel.request_timeout_ms)

    # ------------------------------------------------------------------
    # Agent side
    # ------------------------------------------------------------------

    def connect(self, handler: CommandHandler) -> None:
        """Attach the agent's command handler, replacing any previous one."""
        self._handler = handler

    def disconnect(self) -> None:
        """Detach the agent; later requests fail as transport errors."""
        self._handler = None

    @property
    def connected(self) -> bool:
        """Return ``True`` while an agent handler is attached."""
        return self._handler is not None

    async def publish(self, event: dict[str, Any]) -> None:
        """Deliver an event to every listener.

        A failing listener is logged and never stops delivery to the rest.
        """
        for listener in list(self._listeners):
            try:
                await listener.handle_event(event)
            except Exception as exc:
                logger.warning("Channel listener error (%s): %s", type(listener).__name__, exc)

    # ------------------------------------------------------------------
    # Bridge side
    # ------------------------------------------------------------------

    async def request(self, message: dict[str, Any]) -> Any:
        """Send a command and wait for the agent's reply.

        Args:
            message: Command payload, e.g. ``{"action": "getStatus"}``.

        Returns:
            The reply exactly as the handler produced it.

        Raises:
            TransportUnavailableError: No agent is attached, the reply timed
                out, or the handler crashed before replying.
        """
        action = str(message.get("action", ""))
        handler = self._handler
        if handler is None:
            raise TransportUnavailableError(action, "no agent attached")
        try:
            return await asyncio.wait_for(handler(message), timeout=self._request_timeout)
        except asyncio.TimeoutError as exc:
            raise TransportUnavailableError(action, "no reply received") from exc
        except Exception as exc:
            raise TransportUnavailableError(action, str(exc) or type(exc).__name__) from exc

    def subscribe(self, listener: EventListener) -> None:
        """Register an event listener (a listener already registered is kept once)."""
        if not any(existing is listener for existing in self._listeners):
            self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        """Remove a previously registered listener."""
        self._listeners = [existing for existing in self._listeners if existing is not listener]

    @property
    def listener_count(self) -> int:
        """Return the number of registered listeners."""
        return len(self._listeners)
