"""Rendering: pads, the double-buffered screen, and pane composition."""

from .screen import Pad, Screen

__all__ = ["Pad", "Screen"]
