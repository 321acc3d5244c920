"""Shared display state owned by the dashboard loop."""

import threading
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Iterable

from ..metrics.aggregator import MetricsAggregator
from ..metrics.models import HISTORY_CAPACITY

NEXT_TAB_KEYS = ("l", "right")
PREVIOUS_TAB_KEYS = ("h", "left")
QUIT_KEYS = ("q", "esc", "ctrl+c")


class AppState(Enum):
    RUNNING = "running"
    QUITTING = "quitting"


class SelectedTab(Enum):
    METRICS = 0
    SAMPLES = 1
    SYSTEM = 2

    @property
    def title(self) -> str:
        return self.name

    def next(self) -> "SelectedTab":
        """Following tab; stays put on the last one."""
        return SelectedTab(min(self.value + 1, len(SelectedTab) - 1))

    def previous(self) -> "SelectedTab":
        """Preceding tab; stays put on the first one."""
        return SelectedTab(max(self.value - 1, 0))


@dataclass
class DashboardState:
    """Everything the dashboard renders.

    Only the dashboard loop mutates this, always while holding ``lock``.
    Workers reach it indirectly by posting read samples to the sample queue.
    """

    aggregator: MetricsAggregator = field(default_factory=MetricsAggregator)
    read_samples: Deque[str] = field(default_factory=lambda: deque(maxlen=HISTORY_CAPACITY))
    cpu_percent: float = 0.0
    memory_percent: float = 0.0
    selected_tab: SelectedTab = SelectedTab.METRICS
    state: AppState = AppState.RUNNING
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_samples(self, samples: Iterable[str]) -> None:
        self.read_samples.extend(samples)

    def next_tab(self) -> None:
        self.selected_tab = self.selected_tab.next()

    def previous_tab(self) -> None:
        self.selected_tab = self.selected_tab.previous()

    def quit(self) -> None:
        self.state = AppState.QUITTING

    @property
    def is_quitting(self) -> bool:
        return self.state is AppState.QUITTING

    def handle_key(self, key: str) -> None:
        """Apply a decoded key press; unknown keys are ignored."""
        if key in NEXT_TAB_KEYS:
            self.next_tab()
        elif key in PREVIOUS_TAB_KEYS:
            self.previous_tab()
        elif key in QUIT_KEYS:
            self.quit()
