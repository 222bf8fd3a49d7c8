"""Read offer identity, action state, and descriptive text from tile markup."""

from __future__ import annotations

import logging

from chasecatcher.browser.surface import ElementRef
from chasecatcher.exceptions import SurfaceClosedError
from chasecatcher.layouts.models import OfferLayout
from chasecatcher.models.offer import OfferDetails, OfferState

logger = logging.getLogger(__name__)


async def resolve_identity(tile: ElementRef, layout: OfferLayout) -> str | None:
    """Return the tile's page-scoped identity, or ``None`` if it has none."""
    value = await tile.attribute(layout.identity_attribute)
    if value is None:
        return None
    value = value.strip()
    return value or None


async def classify_offer(element: ElementRef, tile: ElementRef, layout: OfferLayout) -> OfferState:
    """Classify an offer from its completion label and its button marker.

    The tile's accessibility label is checked before the button marker, so
    a tile labelled as added counts as applied even if its icon still shows
    the add marker. A tile with no label is unknown unless the layout opts
    out with ``require_label``.

    Args:
        element: The button container discovered for the offer.
        tile: The offer tile owning *element*.
        layout: Layout that discovered the offer.
    """
    label = await tile.attribute(layout.completed_label_attribute)
    if not label and layout.require_label:
        return OfferState.UNKNOWN
    if label and layout.completed_label_text in label:
        return OfferState.ALREADY_APPLIED

    button = await element.query(layout.button_selector)
    if button is None:
        return OfferState.UNKNOWN

    marker = await button.attribute(layout.marker_attribute)
    if marker == layout.completed_marker:
        return OfferState.ALREADY_APPLIED
    if marker == layout.add_marker:
        return OfferState.ACTIONABLE
    return OfferState.UNKNOWN


async def read_details(identity: str, tile: ElementRef, layout: OfferLayout) -> OfferDetails:
    """Collect merchant, reward, and expiry text for logging.

    Missing fields fall back to defaults; a failed lookup is never an error.
    """
    return OfferDetails(
        identity=identity,
        merchant=await _text_of(tile, layout.merchant_selector) or "Unknown",
        reward=await _text_of(tile, layout.reward_selector),
        expiry=await _text_of(tile, layout.expiry_selector),
    )


async def _text_of(tile: ElementRef, selector: str) -> str:
    if not selector:
        return ""
    try:
        node = await tile.query(selector)
        if node is None:
            return ""
        return " ".join((await node.text() or "").split())
    except SurfaceClosedError:
        raise
    except Exception as exc:
        logger.debug("Could not read %s: %s", selector, exc)
        return ""
