"""Unit tests for offer layouts.

Covers:
  - OfferLayout validation and derived selectors
  - Built-in layouts
  - Loader (JSON files, bad files skipped)
  - OfferMatcher (registration, from_settings ordering, region/readiness/discovery)
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from chasecatcher.layouts.builtin import BUILTIN_LAYOUTS, COMMERCE_TILE, OFFER_HUB
from chasecatcher.layouts.loader import load_layout_from_file, load_layouts_from_dir
from chasecatcher.layouts.matcher import OfferMatcher
from chasecatcher.layouts.models import OfferLayout


def _layout(**overrides) -> OfferLayout:
    data = {
        "layout_id": "test_layout",
        "container_selectors": ["#offers"],
        "tile_selector": ".tile",
        "button_container_selector": ".wrap",
        "button_selector": "button",
    }
    data.update(overrides)
    return OfferLayout(**data)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestOfferLayout:
    """OfferLayout validation."""

    def test_defaults(self) -> None:
        layout = _layout()
        assert layout.enabled is True
        assert layout.add_marker == "ico_add_circle"
        assert layout.completed_marker == "ico_checkmark_filled"
        assert layout.completed_label_text == "Success Added"
        assert layout.identity_attribute == "id"

    def test_actionable_selector(self) -> None:
        layout = _layout()
        assert layout.add_button_selector == 'button[type="ico_add_circle"]'
        assert layout.actionable_selector == '.wrap:has(button[type="ico_add_circle"])'

    def test_invalid_id(self) -> None:
        with pytest.raises(ValidationError):
            _layout(layout_id="Has Spaces")

    def test_container_selectors_required(self) -> None:
        with pytest.raises(ValidationError):
            _layout(container_selectors=[])

    def test_blank_container_selector_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _layout(container_selectors=["#offers", "  "])

    def test_container_selectors_stripped(self) -> None:
        assert _layout(container_selectors=[" #offers "]).container_selectors == ["#offers"]


class TestBuiltinLayouts:
    """Layouts shipped with the package."""

    def test_ids_unique(self) -> None:
        ids = [layout.layout_id for layout in BUILTIN_LAYOUTS]
        assert len(ids) == len(set(ids))

    def test_offer_hub_selector(self) -> None:
        assert OFFER_HUB.actionable_selector == (
            '.r9jbij9:has([data-cy="commerce-tile-button"][type="ico_add_circle"])'
        )

    def test_commerce_tile_uses_tile_as_container(self) -> None:
        assert COMMERCE_TILE.button_container_selector == COMMERCE_TILE.tile_selector


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class TestLoader:
    """Layout JSON loading."""

    def test_load_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "variant.json"
        path.write_text(json.dumps(_layout(layout_id="variant").model_dump()))
        assert load_layout_from_file(path).layout_id == "variant"

    def test_load_from_dir_sorted_and_skips_bad(self, tmp_path: Path) -> None:
        (tmp_path / "b.json").write_text(json.dumps(_layout(layout_id="second").model_dump()))
        (tmp_path / "a.json").write_text(json.dumps(_layout(layout_id="first").model_dump()))
        (tmp_path / "c.json").write_text("{not json")
        (tmp_path / "d.json").write_text(json.dumps({"layout_id": "missing_fields"}))
        (tmp_path / "notes.txt").write_text("ignored")

        layouts = load_layouts_from_dir(tmp_path)

        assert [layout.layout_id for layout in layouts] == ["first", "second"]

    def test_missing_dir(self, tmp_path: Path) -> None:
        assert load_layouts_from_dir(tmp_path / "nope") == []


# ---------------------------------------------------------------------------
# Matcher
# ---------------------------------------------------------------------------


class TestMatcherRegistry:
    """Registration and lookup."""

    def test_register_and_get(self) -> None:
        matcher = OfferMatcher()
        matcher.register(_layout())
        assert matcher.count == 1
        assert matcher.get("test_layout") is not None
        assert matcher.get("other") is None

    def test_register_replaces_in_place(self) -> None:
        matcher = OfferMatcher([_layout(layout_id="a"), _layout(layout_id="b")])
        matcher.register(_layout(layout_id="a", tile_selector=".new"))
        assert [layout.layout_id for layout in matcher.layouts] == ["a", "b"]
        assert matcher.get("a").tile_selector == ".new"

    def test_remove_and_clear(self) -> None:
        matcher = OfferMatcher([_layout(layout_id="a"), _layout(layout_id="b")])
        assert matcher.remove("a") is True
        assert matcher.remove("a") is False
        matcher.clear()
        assert matcher.count == 0

    def test_from_settings_builtins(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setenv("CHASECATCHER_LAYOUTS__LAYOUTS_DIR", str(tmp_path))
        matcher = OfferMatcher.from_settings()
        assert [layout.layout_id for layout in matcher.layouts] == [b.layout_id for b in BUILTIN_LAYOUTS]

    def test_from_settings_files_first_and_override(self, monkeypatch, tmp_path: Path) -> None:
        (tmp_path / "custom.json").write_text(json.dumps(_layout(layout_id="custom").model_dump()))
        override = OFFER_HUB.model_copy(update={"description": "patched"})
        (tmp_path / "hub.json").write_text(json.dumps(override.model_dump()))
        monkeypatch.setenv("CHASECATCHER_LAYOUTS__LAYOUTS_DIR", str(tmp_path))

        matcher = OfferMatcher.from_settings()

        assert [layout.layout_id for layout in matcher.layouts] == [
            "custom",
            "chase_offer_hub",
            "chase_commerce_tile",
        ]
        assert matcher.get("chase_offer_hub").description == "patched"

    def test_from_settings_without_builtins(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setenv("CHASECATCHER_LAYOUTS__LAYOUTS_DIR", str(tmp_path))
        monkeypatch.setenv("CHASECATCHER_LAYOUTS__INCLUDE_BUILTIN", "false")
        assert OfferMatcher.from_settings().count == 0


class TestMatcherQueries:
    """Region, readiness, and discovery against an in-memory page."""

    @pytest.mark.anyio
    async def test_has_region(self, offer_page) -> None:
        assert await OfferMatcher([OFFER_HUB]).has_region(offer_page) is True

    @pytest.mark.anyio
    async def test_no_region(self) -> None:
        from fake_dom import FakeOfferPage

        page = FakeOfferPage(OFFER_HUB, has_container=False)
        assert await OfferMatcher([OFFER_HUB]).has_region(page) is False

    @pytest.mark.anyio
    async def test_disabled_layout_skipped(self, offer_page) -> None:
        offer_page.add_offer("a1")
        matcher = OfferMatcher([OFFER_HUB.model_copy(update={"enabled": False})])
        assert await matcher.has_region(offer_page) is False
        assert await matcher.is_ready(offer_page) is False
        assert await matcher.find_actionable(offer_page) == (None, [])

    @pytest.mark.anyio
    async def test_is_ready_requires_actionable(self, offer_page) -> None:
        matcher = OfferMatcher([OFFER_HUB])
        offer_page.add_offer("a1", "ico_checkmark_filled")
        assert await matcher.is_ready(offer_page) is False
        offer_page.add_offer("a2")
        assert await matcher.is_ready(offer_page) is True

    @pytest.mark.anyio
    async def test_find_actionable_first_non_empty_layout(self, offer_page) -> None:
        offer_page.add_offer("a1")
        offer_page.add_offer("a2")
        unmatched = _layout(layout_id="unmatched")
        matcher = OfferMatcher([unmatched, OFFER_HUB])

        layout, elements = await matcher.find_actionable(offer_page)

        assert layout is OFFER_HUB
        assert [e is o.container for e, o in zip(elements, offer_page.offers)] == [True, True]
