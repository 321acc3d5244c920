"""Live terminal dashboard module."""

from .loop import DashboardLoop
from .state import AppState, DashboardState, SelectedTab
from .terminal import Terminal, decode_keys

__all__ = ["AppState", "DashboardLoop", "DashboardState", "SelectedTab", "Terminal", "decode_keys"]
