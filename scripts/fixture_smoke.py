#!/usr/bin/env python3
"""Smoke test — run the offer agent against the bundled offers-page fixture.

Opens ``tests/fixtures/offer_pages/offer_hub.html`` in Chromium and runs a
full start-to-complete cycle, so layout and pacing changes can be watched
without a bank login.

Usage:
    python scripts/fixture_smoke.py
    python scripts/fixture_smoke.py --headed --events
    CHASECATCHER_ENV=fast python scripts/fixture_smoke.py

Prerequisites:
    - Playwright browsers installed:
        playwright install chromium
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from chasecatcher.agent.offer_agent import OfferAgent
from chasecatcher.browser.surface import PlaywrightSurface
from chasecatcher.layouts.matcher import OfferMatcher
from chasecatcher.models.offer import RunOutcome, RunSummary
from chasecatcher.monitoring.channel import JsonlListener, MessageChannel

console = Console()

FIXTURE = Path(__file__).resolve().parents[1] / "tests" / "fixtures" / "offer_pages" / "offer_hub.html"


async def run_fixture(headed: bool, events: bool) -> RunSummary:
    from playwright.async_api import async_playwright

    channel = MessageChannel.from_settings()
    if events:
        channel.subscribe(JsonlListener(sys.stderr))

    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=not headed)
        try:
            page = await browser.new_page()
            await page.goto(FIXTURE.as_uri())
            agent = OfferAgent(PlaywrightSurface.from_settings(page), OfferMatcher.from_settings(), channel)
            channel.connect(agent.handle_command)

            reply = await channel.request({"action": "startHunting"})
            if not reply.get("success"):
                console.print(f"[red]Start refused:[/red] {reply.get('error')}")
                return agent.summary
            await agent.join(timeout=120)
            return agent.summary
        finally:
            await browser.close()


def main():
    parser = argparse.ArgumentParser(description="Run the offer agent against the offers-page fixture")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--events", action="store_true", help="Emit JSONL events to stderr")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    console.print(f"\n[bold]chasecatcher fixture smoke test[/bold] — {FIXTURE.name}\n")
    summary = asyncio.run(run_fixture(args.headed, args.events))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Merchant")
    table.add_column("Reward")
    table.add_column("Expires")
    for details in summary.added:
        table.add_row(details.merchant, details.reward, details.expiry)
    console.print(table)

    if summary.outcome is RunOutcome.COMPLETE and summary.added_count == 3:
        console.print("\n[bold green]✓ PASS — all 3 pending offers added[/bold green]")
    else:
        console.print(f"\n[bold red]✗ FAIL — outcome {summary.outcome.value}, {summary.added_count} added[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
