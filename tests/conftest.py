"""chasecatcher test configuration — shared fixtures for unit and integration tests."""

from __future__ import annotations

import random
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

FIXTURES_DIR = Path(__file__).parent / "fixtures"
OFFER_PAGES_DIR = FIXTURES_DIR / "offer_pages"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Clear the settings LRU cache between tests."""
    from chasecatcher.settings.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def anyio_backend() -> str:
    """The agent schedules its loop with asyncio tasks."""
    return "asyncio"


@pytest.fixture()
def fast_timing():
    """Timing settings short enough to run a whole loop in milliseconds."""
    from chasecatcher.settings.config import TimingSettings

    return TimingSettings(
        after_click_ms=1,
        random_extra_ms=1,
        min_delay_ms=20,
        check_interval_ms=1,
        settle_ms=1,
        ready_timeout_ms=30,
        fallback_ready_timeout_ms=10,
    )


# ---------------------------------------------------------------------------
# Offers page
# ---------------------------------------------------------------------------


@pytest.fixture()
def hub_layout():
    """The offer-hub layout shipped with the package."""
    from chasecatcher.layouts.builtin import OFFER_HUB

    return OFFER_HUB


@pytest.fixture()
def offer_page(hub_layout):
    """An empty in-memory offers page (add tiles with ``add_offer``)."""
    from fake_dom import FakeOfferPage

    return FakeOfferPage(hub_layout)


@pytest.fixture()
def channel():
    """A message channel with a short request timeout."""
    from chasecatcher.monitoring.channel import MessageChannel

    return MessageChannel(request_timeout_ms=500)


@pytest.fixture()
def events(channel):
    """In-memory listener subscribed to ``channel``."""
    from chasecatcher.monitoring.channel import InMemoryListener

    listener = InMemoryListener()
    channel.subscribe(listener)
    return listener


@pytest.fixture()
def agent(offer_page, hub_layout, channel, fast_timing):
    """An ``OfferAgent`` on ``offer_page``, connected to ``channel``."""
    from chasecatcher.agent.offer_agent import OfferAgent
    from chasecatcher.layouts.matcher import OfferMatcher

    offer_agent = OfferAgent(
        offer_page,
        OfferMatcher([hub_layout]),
        channel=channel,
        timing=fast_timing,
        rng=random.Random(7),
    )
    channel.connect(offer_agent.handle_command)
    return offer_agent


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that require a real browser")
    config.addinivalue_line("markers", "slow: marks tests that take more than a few seconds")
