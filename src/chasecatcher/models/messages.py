"""Wire models for the controller-to-agent message channel.

Payloads are JSON-like dicts using camelCase keys::

    {"action": "startHunting"}                 -> {"success": true}
    {"action": "getStatus"}                    -> {"success": true, "isRunning": false}
    {"action": "updateProgress", "progress": 3}  (event, no reply)
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Action names
# ---------------------------------------------------------------------------

START = "startHunting"
STOP = "stopHunting"
STATUS = "getStatus"

PROGRESS = "updateProgress"
COMPLETE = "huntingComplete"
ERROR = "error"

UNKNOWN_ACTION = "Unknown action"
WRONG_PAGE_ERROR = "Wrong page"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """Serialize with wire aliases, dropping unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Command(_WireModel):
    """Bridge-to-agent request."""

    action: str


class Reply(_WireModel):
    """Agent reply to a ``Command``."""

    success: bool
    error: str | None = None
    is_running: bool | None = Field(default=None, alias="isRunning")


class AgentEvent(_WireModel):
    """Fire-and-forget agent-to-bridge event."""

    action: str
    progress: int | None = None
    success: bool | None = None
    error: str | None = None


def progress_event(count: int) -> dict[str, Any]:
    """Build an ``updateProgress`` payload."""
    return AgentEvent(action=PROGRESS, progress=count).to_payload()


def complete_event() -> dict[str, Any]:
    """Build a ``huntingComplete`` payload."""
    return AgentEvent(action=COMPLETE, success=True).to_payload()


def error_event(message: str) -> dict[str, Any]:
    """Build an ``error`` payload."""
    return AgentEvent(action=ERROR, error=message).to_payload()
