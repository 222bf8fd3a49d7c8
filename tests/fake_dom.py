"""In-memory offers page implementing the ``PageSurface`` protocol.

Selectors are not parsed. Each fake element maps the exact selector strings
an ``OfferLayout`` produces to the elements they would match on a real page.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union

from chasecatcher.exceptions import SurfaceClosedError
from chasecatcher.layouts.models import OfferLayout

OFFERS_URL = "https://secure.chase.com/web/auth/dashboard#/dashboard/merchantOffers/offer-hub"

Child = Union["FakeElement", Callable[[], Union["FakeElement", None]]]


class FakeElement:
    """A DOM element whose ancestors and descendants are keyed by selector."""

    def __init__(self, page: FakeOfferPage, attrs: dict[str, str] | None = None, text: str = "") -> None:
        self.page = page
        self.attrs: dict[str, str] = dict(attrs or {})
        self.text_content = text
        self.ancestors: dict[str, FakeElement] = {}
        self.children: dict[str, Child] = {}
        self.on_click: Callable[[], None] | None = None
        self.clicks = 0

    async def closest(self, selector: str) -> FakeElement | None:
        self.page.check("closest")
        return self.ancestors.get(selector)

    async def query(self, selector: str) -> FakeElement | None:
        self.page.check("element_query")
        child = self.children.get(selector)
        if child is not None and not isinstance(child, FakeElement):
            child = child()
        return child

    async def attribute(self, name: str) -> str | None:
        self.page.check("attribute")
        return self.attrs.get(name)

    async def text(self) -> str | None:
        self.page.check("text")
        return self.text_content

    async def click(self) -> None:
        self.page.check("click")
        self.clicks += 1
        if self.on_click is not None:
            self.on_click()


@dataclass
class FakeOffer:
    """One offer tile with its button container and button."""

    identity: str
    tile: FakeElement
    container: FakeElement
    button: FakeElement

    @property
    def marker(self) -> str | None:
        return self.button.attrs.get("type")


class FakeOfferPage:
    """An offers page holding tiles in DOM order.

    Args:
        layout: Layout whose selectors the page answers to.
        url: Page address.
        has_container: Whether the offer region exists at all.
    """

    def __init__(self, layout: OfferLayout, url: str = OFFERS_URL, has_container: bool = True) -> None:
        self.layout = layout
        self._url = url
        self.has_container = has_container
        self.closed = False
        self.offers: list[FakeOffer] = []
        self.clicked: list[str] = []
        self.actions: list[tuple[str, ...]] = []
        self.go_back_calls = 0
        self.failures: dict[str, list[Exception]] = {}
        self._region = FakeElement(self)

    # -- test helpers --------------------------------------------------

    def add_offer(
        self,
        identity: str | None,
        marker: str | None = None,
        *,
        label: str | None = "Add offer",
        merchant: str = "Acme",
        reward: str = "5% back",
        expiry: str = "10 days left",
        reflect_click: bool = True,
        with_tile: bool = True,
    ) -> FakeOffer:
        """Append an offer; clicking it flips its marker unless *reflect_click* is off.

        Pass ``label=None`` for a tile without an accessibility label.
        """
        layout = self.layout
        tile_attrs: dict[str, str] = {}
        if identity is not None:
            tile_attrs[layout.identity_attribute] = identity
        if label is not None:
            tile_attrs[layout.completed_label_attribute] = label
        tile = FakeElement(self, tile_attrs)
        if layout.merchant_selector:
            tile.children[layout.merchant_selector] = FakeElement(self, text=merchant)
        if layout.reward_selector:
            tile.children[layout.reward_selector] = FakeElement(self, text=reward)
        if layout.expiry_selector:
            tile.children[layout.expiry_selector] = FakeElement(self, text=expiry)

        button_attrs = {layout.marker_attribute: marker or layout.add_marker}
        button = FakeElement(self, button_attrs)
        container = FakeElement(self)
        container.children[layout.button_selector] = button
        if with_tile:
            container.ancestors[layout.tile_selector] = tile

        offer = FakeOffer(identity=identity or "", tile=tile, container=container, button=button)

        def _clicked() -> None:
            self.clicked.append(offer.identity)
            self.actions.append(("click", offer.identity))
            if reflect_click:
                button.attrs[layout.marker_attribute] = layout.completed_marker

        button.on_click = _clicked
        self.offers.append(offer)
        return offer

    def fail_next(self, operation: str, exc: Exception) -> None:
        """Make the next *operation* call raise *exc*."""
        self.failures.setdefault(operation, []).append(exc)

    def check(self, operation: str) -> None:
        if self.closed:
            raise SurfaceClosedError(self._url)
        pending = self.failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _actionable(self) -> list[FakeElement]:
        return [
            o.container
            for o in self.offers
            if o.container.children.get(self.layout.button_selector) is not None
            and o.marker == self.layout.add_marker
        ]

    # -- PageSurface ---------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    def is_closed(self) -> bool:
        return self.closed

    async def query(self, selector: str) -> FakeElement | None:
        self.check("query")
        if selector in self.layout.container_selectors:
            return self._region if self.has_container else None
        if selector == self.layout.actionable_selector and self.has_container:
            found = self._actionable()
            return found[0] if found else None
        return None

    async def query_all(self, selector: str) -> list[FakeElement]:
        self.check("query_all")
        if selector == self.layout.actionable_selector and self.has_container:
            return self._actionable()
        return []

    async def go_back(self) -> None:
        self.check("go_back")
        self.go_back_calls += 1
        self.actions.append(("back",))
