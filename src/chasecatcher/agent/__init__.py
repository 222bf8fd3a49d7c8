"""Automation agent — the offer discovery and click loop.

``OfferAgent`` owns the loop and its run state; ``inspection`` holds the
stateless tile readers it uses to classify offers.
"""

from chasecatcher.agent.offer_agent import OfferAgent

__all__ = ["OfferAgent"]
