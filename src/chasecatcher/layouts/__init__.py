"""Offer layouts — data-driven descriptions of rewards-page markup variants.

Modules:

* ``models`` — ``OfferLayout`` selector/marker data model.
* ``builtin`` — layouts shipped with the package.
* ``loader`` — load extra layouts from JSON files on disk.
* ``matcher`` — ``OfferMatcher``, the ordered strategy registry used by the agent.
"""

from chasecatcher.layouts.builtin import BUILTIN_LAYOUTS
from chasecatcher.layouts.loader import load_layouts_from_dir
from chasecatcher.layouts.matcher import OfferMatcher
from chasecatcher.layouts.models import OfferLayout

__all__ = [
    "BUILTIN_LAYOUTS",
    "OfferLayout",
    "OfferMatcher",
    "load_layouts_from_dir",
]
