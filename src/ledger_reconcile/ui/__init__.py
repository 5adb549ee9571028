"""Terminal user interface."""

from .terminal import TerminalChooser, render_candidates

__all__ = ["TerminalChooser", "render_candidates"]
