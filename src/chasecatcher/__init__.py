"""chasecatcher — adds every available merchant reward offer on a rewards page."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("chasecatcher")
except Exception:
    __version__ = "0.0.0"
