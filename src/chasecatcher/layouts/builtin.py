"""Built-in offer layouts, matched after any layouts loaded from disk."""

from __future__ import annotations

from chasecatcher.layouts.models import OfferLayout

OFFER_HUB = OfferLayout(
    layout_id="chase_offer_hub",
    description="Offer hub grid with a hashed-class wrapper around each tile button.",
    container_selectors=['[data-testid="offerTileGridContainer"]'],
    tile_selector='[data-cy="commerce-tile"]',
    button_container_selector=".r9jbij9",
    button_selector='[data-cy="commerce-tile-button"]',
    merchant_selector=".r9jbijk",
    reward_selector=".r9jbijj",
    expiry_selector='[data-testid="days-left-banner"]',
)

COMMERCE_TILE = OfferLayout(
    layout_id="chase_commerce_tile",
    description="Tiles without the hashed wrapper; the tile itself holds the button.",
    container_selectors=['[data-testid="offerTileGridContainer"]'],
    tile_selector='[data-cy="commerce-tile"]',
    button_container_selector='[data-cy="commerce-tile"]',
    button_selector='[data-cy="commerce-tile-button"]',
    expiry_selector='[data-testid="days-left-banner"]',
)

BUILTIN_LAYOUTS: tuple[OfferLayout, ...] = (OFFER_HUB, COMMERCE_TILE)
