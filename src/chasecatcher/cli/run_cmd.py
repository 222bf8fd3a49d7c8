"""CLI command that opens the rewards page and runs the offer agent."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from chasecatcher.control.bridge import PanelState, PanelView
from chasecatcher.models.offer import RunSummary

console = Console()

_VIEW_STYLES = {
    PanelView.READY: "white",
    PanelView.RUNNING: "cyan",
    PanelView.PAUSED: "yellow",
    PanelView.COMPLETE: "green",
    PanelView.ERROR: "red",
    PanelView.WRONG_PAGE: "red",
    PanelView.NOT_READY: "red",
}

_STOP_GRACE_SEC = 30.0


def run_offers(
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Offers page URL (default: site.offers_url)."),
    headless: Optional[bool] = typer.Option(None, "--headless/--headed", help="Override browser.headless."),
    user_data_dir: Optional[Path] = typer.Option(
        None, "--user-data-dir", help="Browser profile directory (keeps you logged in)."
    ),
    wait_for_login: bool = typer.Option(
        True, "--wait/--no-wait", help="Wait for Enter before starting (time to log in)."
    ),
    events: bool = typer.Option(False, "--events", help="Emit JSONL events to stderr."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Open the offers page and add every available offer."""
    from chasecatcher.exceptions import NavigationError
    from chasecatcher.settings import get_settings

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    settings = get_settings()
    target = url or settings.site.offers_url
    profile = str(user_data_dir) if user_data_dir else settings.browser.user_data_dir
    run_headless = settings.browser.headless if headless is None else headless

    try:
        summary = asyncio.run(_run_session(target, run_headless, profile, wait_for_login, events))
    except NavigationError as e:
        console.print(f"[red]✗[/red] Could not open {target}: {e.reason}")
        raise typer.Exit(code=1) from None
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        raise typer.Exit(code=130) from None

    if summary is None:
        raise typer.Exit(code=1)
    _print_summary(summary)


async def _run_session(
    url: str,
    headless: bool,
    user_data_dir: str,
    wait_for_login: bool,
    events: bool,
) -> RunSummary | None:
    from playwright.async_api import async_playwright

    from chasecatcher.browser.navigation import resilient_goto
    from chasecatcher.settings import get_settings

    browser_settings = get_settings().browser
    launch_kwargs: dict = {"headless": headless, "timeout": browser_settings.timeout_ms}
    if browser_settings.channel:
        launch_kwargs["channel"] = browser_settings.channel

    Path(user_data_dir).mkdir(parents=True, exist_ok=True)
    async with async_playwright() as pw:
        context = await pw.chromium.launch_persistent_context(user_data_dir, **launch_kwargs)
        try:
            page = context.pages[0] if context.pages else await context.new_page()
            await resilient_goto(page, url, timeout_ms=browser_settings.timeout_ms)
            if wait_for_login:
                await asyncio.to_thread(
                    console.input, "[bold]Log in and open the offers page, then press Enter to start...[/bold] "
                )
            return await _catch_offers(page, events)
        finally:
            await context.close()


async def _catch_offers(page, events: bool) -> RunSummary | None:
    from chasecatcher.agent.offer_agent import OfferAgent
    from chasecatcher.browser.surface import PlaywrightSurface
    from chasecatcher.control.bridge import ControllerBridge
    from chasecatcher.layouts.matcher import OfferMatcher
    from chasecatcher.monitoring.channel import JsonlListener, LoggingListener, MessageChannel

    channel = MessageChannel.from_settings()
    channel.subscribe(LoggingListener())
    if events:
        channel.subscribe(JsonlListener(sys.stderr))

    agent = OfferAgent(PlaywrightSurface.from_settings(page), OfferMatcher.from_settings(), channel)
    channel.connect(agent.handle_command)
    bridge = ControllerBridge(
        channel,
        surface_url=lambda: None if page.is_closed() else page.url,
        on_change=_render_state,
    )

    try:
        await bridge.attach()
        state = await bridge.start()
        if state.view is not PanelView.RUNNING:
            return None
        try:
            await agent.join()
        except asyncio.CancelledError:
            console.print("\n[yellow]Stopping after the current offer...[/yellow]")
            await bridge.stop()
            try:
                await agent.join(timeout=_STOP_GRACE_SEC)
            except asyncio.TimeoutError:
                await agent.close()
        return agent.summary
    finally:
        bridge.detach()
        channel.disconnect()
        await agent.close()


def _render_state(state: PanelState) -> None:
    style = _VIEW_STYLES.get(state.view, "white")
    suffix = f"  [dim]({state.progress} added)[/dim]" if state.progress else ""
    console.print(f"[{style}]{state.message}[/{style}]{suffix}")


def _print_summary(summary: RunSummary) -> None:
    console.print(f"\n[bold]Run {summary.outcome.value}:[/bold] {summary.added_count} offer(s) added")
    if summary.added:
        table = Table(title="Offers added")
        table.add_column("#", justify="right")
        table.add_column("Merchant", style="cyan")
        table.add_column("Reward")
        table.add_column("Expires", style="dim")
        for i, details in enumerate(summary.added, 1):
            table.add_row(str(i), details.merchant, details.reward, details.expiry)
        console.print(table)
    if summary.skipped:
        console.print(f"[yellow]⚠[/yellow] {len(summary.skipped)} offer(s) skipped after errors")
