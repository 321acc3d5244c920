"""Renderables for the dashboard tabs."""

from typing import List, Sequence

from rich.console import Group, RenderableType
from rich.layout import Layout
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.text import Text

from ..metrics.models import Number
from .state import DashboardState, SelectedTab

SPARK_CHARS = "▁▂▃▄▅▆▇█"

# (series name, title, unit, colour, layout ratio)
METRIC_PANELS = (
    ("latency_avg_ms", "Average Latency", "ms", "blue", 2),
    ("latency_p999_ms", "P99.9 Latency", "ms", "bright_blue", 2),
    ("writes", "Writes", "ops/s", "green", 2),
    ("reads", "Reads", "ops/s", "bright_green", 2),
    ("write_errors", "Write Errors", "ops/s", "red", 1),
    ("read_errors", "Read Errors", "ops/s", "bright_red", 1),
)

KEY_HINT = "h/← previous  l/→ next  q quit"


def sparkline(values: Sequence[Number], width: int) -> str:
    """Render the most recent ``width`` values as a one-line bar chart."""
    if width <= 0 or not values:
        return ""
    window = list(values)[-width:]
    peak = max(window)
    if peak <= 0:
        return SPARK_CHARS[0] * len(window)
    top = len(SPARK_CHARS) - 1
    return "".join(SPARK_CHARS[int(round(max(v, 0) / peak * top))] for v in window)


def format_value(value: Number) -> str:
    if isinstance(value, float) and not value.is_integer():
        return f"{value:.2f}"
    return str(int(value))


def render_tabs(selected: SelectedTab) -> Text:
    text = Text()
    for i, tab in enumerate(SelectedTab):
        if i:
            text.append(" │ ", style="dim")
        style = "bold bright_blue" if tab is selected else ""
        text.append(f" {tab.title} ", style=style)
    text.append(f"    {KEY_HINT}", style="dim")
    return text


def render_metrics(state: DashboardState, width: int) -> Layout:
    layout = Layout(name="metrics")
    panels: List[Layout] = []
    for name, title, unit, colour, ratio in METRIC_PANELS:
        history = state.aggregator.history(name)
        latest = history[-1] if history else 0
        panel = Panel(
            Text(sparkline(history, width - 4), style=colour, no_wrap=True),
            title=f"{title} ({format_value(latest)} {unit})",
            title_align="left",
        )
        panels.append(Layout(panel, name=name, ratio=ratio))
    layout.split_column(*panels)
    return layout


def render_samples(state: DashboardState) -> Panel:
    # Newest first so the latest reads stay visible when the list is cropped
    lines = Text("\n".join(reversed(state.read_samples)), no_wrap=True, overflow="ellipsis")
    return Panel(lines, title="Read Samples", title_align="left")


def render_gauge(title: str, percent: float, colour: str) -> Panel:
    bar = ProgressBar(total=100.0, completed=min(max(percent, 0.0), 100.0), complete_style=colour)
    return Panel(Group(Text(f"{percent:.1f}%"), bar), title=title, title_align="left")


def render_system(state: DashboardState) -> Layout:
    layout = Layout(name="system")
    layout.split_column(
        Layout(render_gauge("CPU", state.cpu_percent, "blue"), name="cpu"),
        Layout(render_gauge("MEM", state.memory_percent, "bright_blue"), name="mem"),
    )
    return layout


def render_dashboard(state: DashboardState, width: int) -> RenderableType:
    """Build the full screen for the currently selected tab."""
    if state.selected_tab is SelectedTab.METRICS:
        body = render_metrics(state, width)
    elif state.selected_tab is SelectedTab.SAMPLES:
        body = render_samples(state)
    else:
        body = render_system(state)

    root = Layout(name="root")
    root.split_column(
        Layout(render_tabs(state.selected_tab), name="tabs", size=2),
        Layout(body, name="body"),
    )
    return root
