"""Automation agent — the scan, click, go-back loop over a live offers page.

One ``OfferAgent`` owns all run state: the ``running`` flag, the set of offer
identities already acted on (ProcessedSet), and the queue of offers found on
the latest DOM snapshot (PendingQueue). The loop runs as a single asyncio
task; every wait is an ``await`` so page mutations interleave between steps::

    start ─▶ [running?] ─▶ wait for readiness ─▶ refresh queue ─┬─ empty ─▶ complete
                 ▲                                              │
                 └── pacing ◀── go back ◀── pacing ◀── click ◀──┘

Stopping is cooperative. ``stop()`` only clears the flag; a click already
sent finishes its go-back and the loop exits at the top of the next step.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from chasecatcher.agent.inspection import classify_offer, read_details, resolve_identity
from chasecatcher.browser.pacing import random_delay_ms
from chasecatcher.exceptions import DomQueryError, ElementMissingError, SurfaceClosedError, WrongSurfaceError
from chasecatcher.layouts.matcher import OfferMatcher
from chasecatcher.models.messages import (
    START,
    STATUS,
    STOP,
    UNKNOWN_ACTION,
    Command,
    Reply,
    complete_event,
    error_event,
    progress_event,
)
from chasecatcher.models.offer import OfferState, PendingOffer, RunOutcome, RunSummary

if TYPE_CHECKING:
    from chasecatcher.browser.surface import ElementRef, PageSurface
    from chasecatcher.layouts.models import OfferLayout
    from chasecatcher.monitoring.channel import MessageChannel
    from chasecatcher.settings.config import TimingSettings

logger = logging.getLogger(__name__)


class OfferAgent:
    """Adds every actionable offer on a page, one at a time.

    Args:
        surface: The page to operate on.
        matcher: Layout strategies used to find offers (default: from settings).
        channel: Channel to publish progress/complete/error events on.
        timing: Pacing and polling intervals (default: from settings).
        rng: Random source for pacing delays.
    """

    def __init__(
        self,
        surface: PageSurface,
        matcher: OfferMatcher | None = None,
        channel: MessageChannel | None = None,
        timing: TimingSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if timing is None:
            from chasecatcher.settings import get_settings

            timing = get_settings().timing

        self._surface = surface
        self._matcher = matcher or OfferMatcher.from_settings()
        self._channel = channel
        self._timing = timing
        self._rng = rng or random.Random()

        self._running = False
        self._processed: set[str] = set()
        self._pending: list[PendingOffer] = []
        self._summary = RunSummary()
        self._task: asyncio.Task[None] | None = None
        self._generation = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        """Return the RunState flag."""
        return self._running

    @property
    def processed_ids(self) -> frozenset[str]:
        """Return a snapshot of the ProcessedSet."""
        return frozenset(self._processed)

    @property
    def pending(self) -> list[PendingOffer]:
        """Return a copy of the PendingQueue."""
        return list(self._pending)

    @property
    def summary(self) -> RunSummary:
        """Return telemetry for the current (or last) run."""
        return self._summary

    @property
    def task(self) -> asyncio.Task[None] | None:
        """Return the loop task handle, if a run was started."""
        return self._task

    def reset(self) -> None:
        """Clear run state and arm the ``running`` flag for a new run."""
        self._processed.clear()
        self._pending.clear()
        self._summary = RunSummary()
        self._running = True

    def teardown(self, outcome: RunOutcome = RunOutcome.STOPPED) -> None:
        """Drop session state and clear ``running``; the summary is kept."""
        self._running = False
        self._processed.clear()
        self._pending.clear()
        self._summary.finish(outcome)

    # ------------------------------------------------------------------
    # Pacing and readiness
    # ------------------------------------------------------------------

    def get_random_delay(self) -> float:
        """Return a fresh pacing delay in milliseconds."""
        return random_delay_ms(self._timing.after_click_ms, self._timing.random_extra_ms, self._rng)

    def _pacing_seconds(self) -> float:
        return self.get_random_delay() / 1000

    async def is_page_ready(self) -> bool:
        """Return ``True`` once an offer region with an actionable offer is rendered.

        A query that fails mid-navigation counts as "not ready yet".
        """
        try:
            return await self._matcher.is_ready(self._surface)
        except DomQueryError as exc:
            logger.debug("Readiness check failed: %s", exc)
            return False

    async def wait_for_page(self, max_wait_ms: int | None = None) -> bool:
        """Poll readiness until it is observed or *max_wait_ms* elapses.

        On success waits a short settle delay so in-flight DOM updates land
        before the page is queried.
        """
        if max_wait_ms is None:
            max_wait_ms = self._timing.ready_timeout_ms
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max_wait_ms / 1000
        while loop.time() < deadline:
            if await self.is_page_ready():
                await asyncio.sleep(self._timing.settle_ms / 1000)
                return True
            await asyncio.sleep(self._timing.check_interval_ms / 1000)
        return False

    async def _await_readiness(self, generation: int | None = None) -> bool:
        try:
            ready = await asyncio.wait_for(self.wait_for_page(), timeout=self._timing.min_delay_ms / 1000)
        except asyncio.TimeoutError:
            ready = False
        if not ready and self._may_act(generation):
            ready = await self.wait_for_page(self._timing.fallback_ready_timeout_ms)
            if not ready:
                logger.debug("Page never looked ready; scanning anyway")
        return ready

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def is_not_added_offer(self, element: ElementRef, layout: OfferLayout) -> bool:
        """Return ``True`` if *element* belongs to an offer that still needs adding.

        Offers found already applied are recorded in the ProcessedSet.
        Anything ambiguous (no tile, no identity, no marker) is rejected.
        """
        return await self._inspect(element, layout) is not None

    async def _inspect(self, element: ElementRef, layout: OfferLayout) -> PendingOffer | None:
        try:
            tile = await element.closest(layout.tile_selector)
            if tile is None:
                return None
            identity = await resolve_identity(tile, layout)
            if identity is None:
                logger.debug("Offer tile has no %s attribute, skipping", layout.identity_attribute)
                return None
            if identity in self._processed:
                return None
            state = await classify_offer(element, tile, layout)
        except DomQueryError as exc:
            logger.debug("Offer inspection failed: %s", exc)
            return None

        if state is OfferState.ALREADY_APPLIED:
            self._processed.add(identity)
            return None
        if state is not OfferState.ACTIONABLE:
            return None
        return PendingOffer(identity=identity, element=element, tile=tile, layout=layout)

    async def refresh_unprocessed_offers(self) -> list[PendingOffer]:
        """Rebuild the PendingQueue from the current DOM snapshot, in DOM order."""
        layout, elements = await self._matcher.find_actionable(self._surface)
        pending: list[PendingOffer] = []
        seen: set[str] = set()
        if layout is not None:
            for element in elements:
                offer = await self._inspect(element, layout)
                if offer is None or offer.identity in seen:
                    continue
                seen.add(offer.identity)
                pending.append(offer)
        self._pending = pending
        logger.info("Found %d uncaught rewards to process", len(pending))
        return list(pending)

    # ------------------------------------------------------------------
    # Loop step
    # ------------------------------------------------------------------

    async def process_next_offer(self, generation: int | None = None) -> float | None:
        """Run one loop step.

        Args:
            generation: Run the step belongs to. A step from a superseded run
                ends without touching the page, even if a newer run has set
                ``running`` again.

        Returns:
            Seconds to wait before the next step, or ``None`` when the loop
            must end (stopped or complete).

        Raises:
            SurfaceClosedError: The page went away.
        """
        if not self._may_act(generation):
            logger.info("Catching paused")
            return None

        await self._await_readiness(generation)
        if not self._may_act(generation):
            logger.info("Catching paused")
            return None

        await self.refresh_unprocessed_offers()
        if not self._pending:
            logger.info("All done! Every reward has been caught (%d added)", self._summary.added_count)
            self.teardown(RunOutcome.COMPLETE)
            await self._emit(complete_event())
            return None

        offer = self._pending.pop(0)
        try:
            await self._capture(offer)
        except SurfaceClosedError:
            raise
        except Exception as exc:
            logger.warning("Failed to capture offer %s: %s", offer.identity, exc)
            self._drop(offer)
            return self._pacing_seconds()

        await asyncio.sleep(self._pacing_seconds())
        await self._navigate_back()
        return self._pacing_seconds()

    async def _capture(self, offer: PendingOffer) -> None:
        details = await read_details(offer.identity, offer.tile, offer.layout)
        button = await offer.element.query(offer.layout.button_selector)
        if button is None:
            raise ElementMissingError(offer.identity, "Add button")

        await button.click()
        self._processed.add(offer.identity)
        self._summary.added.append(details)
        logger.info("Capturing offer: %s", details.describe())
        await self._emit(progress_event(self._summary.added_count))

    def _drop(self, offer: PendingOffer) -> None:
        self._pending = [p for p in self._pending if p.identity != offer.identity]
        self._processed.add(offer.identity)
        self._summary.skipped.append(offer.identity)

    async def _navigate_back(self) -> None:
        try:
            await self._surface.go_back()
        except SurfaceClosedError:
            raise
        except Exception as exc:
            logger.warning("Navigate back failed: %s", exc)

    # ------------------------------------------------------------------
    # Loop driver
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task[None]:
        """Reset run state and schedule the loop task."""
        self.reset()
        self._generation += 1
        logger.info("Starting the hunt for offers on %s", self._surface.url)
        self._task = asyncio.create_task(self._run(self._generation), name="offer-agent-loop")
        return self._task

    def stop(self) -> None:
        """Clear ``running``; the loop exits at the top of its next step."""
        if self._running:
            logger.info("Stop requested; letting the in-flight step finish")
        self._running = False
        if self._task is None or self._task.done():
            self.teardown(RunOutcome.STOPPED)

    def status(self) -> bool:
        """Return whether a run is in progress."""
        return self._running

    async def join(self, timeout: float | None = None) -> None:
        """Wait for the loop task to finish."""
        if self._task is not None:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)

    async def close(self) -> None:
        """Cancel the loop task outright (page unload or shutdown)."""
        self._running = False
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def _is_current(self, generation: int) -> bool:
        return self._running and generation == self._generation

    def _may_act(self, generation: int | None) -> bool:
        if generation is None:
            return self._running
        return self._is_current(generation)

    async def _drain(self) -> None:
        task = self._task
        if task is not None and not task.done():
            logger.info("Waiting for the previous run to finish its step")
            await asyncio.wait({task})

    async def _run(self, generation: int) -> None:
        try:
            while self._is_current(generation):
                try:
                    delay = await self.process_next_offer(generation)
                except SurfaceClosedError:
                    raise
                except Exception:
                    logger.exception("Offer step failed; retrying after pacing delay")
                    delay = self._pacing_seconds()
                if delay is None:
                    break
                await asyncio.sleep(delay)
        except SurfaceClosedError as exc:
            logger.warning("Offers page went away, stopping: %s", exc)
            if generation == self._generation:
                self.teardown(RunOutcome.SURFACE_CLOSED)
                await self._emit(error_event(str(exc)))
        finally:
            if generation == self._generation and self._summary.finished_at is None:
                self.teardown(RunOutcome.STOPPED)

    # ------------------------------------------------------------------
    # Commands and events
    # ------------------------------------------------------------------

    async def handle_command(self, message: Any) -> dict[str, Any]:
        """Handle one channel command and return the reply payload.

        Unknown or malformed commands get an explicit failure reply.
        """
        try:
            command = Command.model_validate(message)
        except ValidationError:
            logger.warning("Malformed command: %r", message)
            return Reply(success=False, error=UNKNOWN_ACTION).to_payload()

        handlers = {
            START: self._on_start,
            STOP: self._on_stop,
            STATUS: self._on_status,
        }
        handler = handlers.get(command.action)
        if handler is None:
            logger.warning("Unknown action: %s", command.action)
            return Reply(success=False, error=UNKNOWN_ACTION).to_payload()

        try:
            reply = await handler()
        except WrongSurfaceError as exc:
            logger.info("No offer container found on %s - are you on the right page?", exc.url)
            reply = Reply(success=False, error=str(exc))
        except Exception as exc:
            logger.exception("Error handling %s", command.action)
            reply = Reply(success=False, error=str(exc))
        return reply.to_payload()

    async def _on_start(self) -> Reply:
        if self._running:
            logger.info("Start requested while already running")
            return Reply(success=True)
        # A stopped run may still be mid-step; only one loop acts on the page.
        await self._drain()
        if self._running:
            return Reply(success=True)
        if not await self._matcher.has_region(self._surface):
            raise WrongSurfaceError(self._surface.url)
        self.start()
        return Reply(success=True)

    async def _on_stop(self) -> Reply:
        self.stop()
        return Reply(success=True)

    async def _on_status(self) -> Reply:
        return Reply(success=True, is_running=self._running)

    async def _emit(self, event: dict[str, Any]) -> None:
        if self._channel is not None:
            await self._channel.publish(event)
