"""Runtime package: terminal control, input, signals, layout and the main loop."""

from .app import run_console

__all__ = ["run_console"]
