"""Controller bridge — the control-panel side of the message channel."""

from chasecatcher.control.bridge import ControllerBridge, PanelState, PanelView, is_expected_site

__all__ = ["ControllerBridge", "PanelState", "PanelView", "is_expected_site"]
