"""Offer models for the automation loop.

Offers are derived live from the DOM on every loop iteration. Nothing here is
persisted; ``RunSummary`` only outlives a run so the control surface can show
what happened.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from chasecatcher.browser.surface import ElementRef
    from chasecatcher.layouts.models import OfferLayout


class OfferState(str, Enum):
    """Action state of an offer tile as read from its markers."""

    ACTIONABLE = "actionable"
    ALREADY_APPLIED = "already_applied"
    UNKNOWN = "unknown"


class RunOutcome(str, Enum):
    """Why a run ended."""

    RUNNING = "running"
    COMPLETE = "complete"
    STOPPED = "stopped"
    SURFACE_CLOSED = "surface_closed"


@dataclass
class PendingOffer:
    """One PendingQueue entry discovered on the current DOM snapshot."""

    identity: str
    element: ElementRef  # the actionable button container
    tile: ElementRef
    layout: OfferLayout


@dataclass
class OfferDetails:
    """Descriptive offer fields, used for logging and telemetry only."""

    identity: str
    merchant: str = "Unknown"
    reward: str = ""
    expiry: str = ""

    def describe(self) -> str:
        """Return a one-line human-readable description."""
        text = self.merchant
        if self.reward:
            text += f" - {self.reward}"
        if self.expiry:
            text += f" ({self.expiry})"
        return text


@dataclass
class RunSummary:
    """Telemetry for a single start-to-end run."""

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    outcome: RunOutcome = RunOutcome.RUNNING
    added: list[OfferDetails] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        """Return the number of offers clicked during the run."""
        return len(self.added)

    def finish(self, outcome: RunOutcome) -> None:
        """Mark the run finished, keeping the first recorded outcome."""
        if self.finished_at is None:
            self.finished_at = datetime.now(timezone.utc)
            self.outcome = outcome

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "outcome": self.outcome.value,
            "added": [
                {"identity": d.identity, "merchant": d.merchant, "reward": d.reward, "expiry": d.expiry}
                for d in self.added
            ],
            "skipped": list(self.skipped),
        }
