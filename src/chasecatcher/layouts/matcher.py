"""Offer matcher — ordered registry of layout strategies.

Layouts are evaluated in registration order. Readiness and region checks are
an *or* across enabled layouts; offer discovery uses the first layout that
yields a non-empty actionable set. Disabled layouts (``enabled=False``) are
skipped.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chasecatcher.layouts.builtin import BUILTIN_LAYOUTS
from chasecatcher.layouts.loader import load_layouts_from_dir
from chasecatcher.layouts.models import OfferLayout

if TYPE_CHECKING:
    from chasecatcher.browser.surface import ElementRef, PageSurface
    from chasecatcher.settings.config import Settings

logger = logging.getLogger(__name__)


class OfferMatcher:
    """Matches live page markup against registered offer layouts.

    Args:
        layouts: Initial layouts, in match order.
    """

    def __init__(self, layouts: list[OfferLayout] | tuple[OfferLayout, ...] = ()) -> None:
        self._layouts: list[OfferLayout] = []
        self.register_many(list(layouts))

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> OfferMatcher:
        """Build a matcher from configured layout files plus the built-ins.

        Layouts from disk come first so a site variant can be overridden
        without a code change; a built-in whose id is already registered
        is skipped.
        """
        if settings is None:
            from chasecatcher.settings import get_settings

            settings = get_settings()

        matcher = cls(load_layouts_from_dir(settings.layouts.layouts_dir))
        if settings.layouts.include_builtin:
            for layout in BUILTIN_LAYOUTS:
                if matcher.get(layout.layout_id) is None:
                    matcher.register(layout)
        if not matcher.count:
            logger.warning("No offer layouts configured; nothing will ever match")
        return matcher

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, layout: OfferLayout) -> None:
        """Register a layout, replacing any layout with the same id in place."""
        for i, existing in enumerate(self._layouts):
            if existing.layout_id == layout.layout_id:
                logger.info("Replacing layout %s", layout.layout_id)
                self._layouts[i] = layout
                return
        self._layouts.append(layout)

    def register_many(self, layouts: list[OfferLayout]) -> int:
        """Register multiple layouts at once and return how many were added."""
        for layout in layouts:
            self.register(layout)
        return len(layouts)

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    async def has_region(self, surface: PageSurface) -> bool:
        """Return ``True`` if any enabled layout's offer region is present."""
        for layout in self._enabled():
            if await self._has_container(surface, layout):
                return True
        return False

    async def is_ready(self, surface: PageSurface) -> bool:
        """Return ``True`` if some layout shows a region and an actionable offer."""
        for layout in self._enabled():
            if not await self._has_container(surface, layout):
                continue
            if await surface.query(layout.actionable_selector) is not None:
                return True
        return False

    async def find_actionable(self, surface: PageSurface) -> tuple[OfferLayout | None, list[ElementRef]]:
        """Return the first layout yielding actionable elements, with those elements.

        Returns:
            ``(layout, elements)`` in DOM order, or ``(None, [])`` when no
            layout matches anything.
        """
        for layout in self._enabled():
            elements = await surface.query_all(layout.actionable_selector)
            if elements:
                logger.debug("Layout %s matched %d actionable offers", layout.layout_id, len(elements))
                return layout, elements
        return None, []

    @staticmethod
    async def _has_container(surface: PageSurface, layout: OfferLayout) -> bool:
        for selector in layout.container_selectors:
            if await surface.query(selector) is not None:
                return True
        return False

    def _enabled(self) -> list[OfferLayout]:
        return [layout for layout in self._layouts if layout.enabled]

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def count(self) -> int:
        """Return the number of registered layouts."""
        return len(self._layouts)

    @property
    def layouts(self) -> list[OfferLayout]:
        """Return a copy of all registered layouts in match order."""
        return list(self._layouts)

    def get(self, layout_id: str) -> OfferLayout | None:
        """Retrieve a layout by id."""
        for layout in self._layouts:
            if layout.layout_id == layout_id:
                return layout
        return None

    def remove(self, layout_id: str) -> bool:
        """Remove a layout by id; return ``True`` if it was registered."""
        for i, layout in enumerate(self._layouts):
            if layout.layout_id == layout_id:
                self._layouts.pop(i)
                return True
        return False

    def clear(self) -> None:
        """Remove all registered layouts."""
        self._layouts.clear()
