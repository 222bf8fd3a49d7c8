"""Layout loader — load offer layouts from JSON files on disk.

Layout JSON files live in a configurable directory (default:
``config/layouts/``). Each ``.json`` file contains a single layout definition
conforming to the ``OfferLayout`` schema.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from chasecatcher.layouts.models import OfferLayout

logger = logging.getLogger(__name__)


def load_layout_from_file(path: Path) -> OfferLayout:
    """Load a single layout from a JSON file.

    Args:
        path: Path to the JSON file.

    Returns:
        A validated ``OfferLayout`` instance.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        pydantic.ValidationError: If the data does not conform to the schema.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    return OfferLayout(**data)


def load_layouts_from_dir(directory: Path | str) -> list[OfferLayout]:
    """Load all layout JSON files from a directory, in file-name order.

    Files that fail validation are logged and skipped rather than
    aborting the entire load.

    Args:
        directory: Path to the layouts directory.

    Returns:
        List of successfully loaded ``OfferLayout`` instances.
    """
    dir_path = Path(directory)
    if not dir_path.is_dir():
        logger.debug("Layout directory does not exist: %s", dir_path)
        return []

    layouts: list[OfferLayout] = []
    for json_file in sorted(dir_path.glob("*.json")):
        try:
            layout = load_layout_from_file(json_file)
            layouts.append(layout)
            logger.info("Loaded layout %s from %s", layout.layout_id, json_file.name)
        except Exception:
            logger.exception("Failed to load layout from %s", json_file)
    return layouts
