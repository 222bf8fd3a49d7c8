"""Offer layout models — one markup variant of the rewards page.

The rewards page markup is not contractually stable. Each ``OfferLayout``
describes one observed variant as plain selector data so new variants can be
added as JSON files without touching the automation loop.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class OfferLayout(BaseModel):
    """Selectors and marker values for one rewards-page markup variant."""

    layout_id: str = Field(
        ...,
        description="Unique identifier (e.g., 'chase_offer_hub').",
        pattern=r"^[a-z0-9_]+$",
    )
    description: str = ""
    enabled: bool = True

    container_selectors: list[str] = Field(
        ...,
        min_length=1,
        description="Alternative selectors for the offer region; any match counts.",
    )
    tile_selector: str = Field(..., description="Selector for one offer tile.")
    button_container_selector: str = Field(
        ...,
        description="Selector for the element wrapping the tile's action button.",
    )
    button_selector: str = Field(..., description="Selector for the action button inside the container.")

    marker_attribute: str = "type"
    add_marker: str = "ico_add_circle"
    completed_marker: str = "ico_checkmark_filled"

    completed_label_attribute: str = "aria-label"
    completed_label_text: str = "Success Added"
    require_label: bool = Field(
        default=True,
        description="Reject tiles that carry no completion-label attribute at all.",
    )

    identity_attribute: str = "id"

    # Descriptive fields (logging only; empty = not available in this variant)
    merchant_selector: str = ""
    reward_selector: str = ""
    expiry_selector: str = ""

    @field_validator("container_selectors")
    @classmethod
    def validate_container_selectors(cls, v: list[str]) -> list[str]:
        """Reject blank selectors."""
        cleaned = [s.strip() for s in v]
        if any(not s for s in cleaned):
            raise ValueError("container_selectors must not contain blank selectors")
        return cleaned

    @property
    def add_button_selector(self) -> str:
        """Selector for an action button carrying the add marker."""
        return f'{self.button_selector}[{self.marker_attribute}="{self.add_marker}"]'

    @property
    def actionable_selector(self) -> str:
        """Selector for button containers that hold an add-marked button."""
        return f"{self.button_container_selector}:has({self.add_button_selector})"
