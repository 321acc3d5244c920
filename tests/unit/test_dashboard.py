"""
Unit tests for dashboard state, key decoding, rendering and the dashboard loop.
"""

import io
import termios

import pytest
from rich.console import Console

from wideload.core.cancellation import CancellationSignal, SampleQueue
from wideload.dashboard import AppState, DashboardLoop, DashboardState, SelectedTab, Terminal, decode_keys
from wideload.dashboard import terminal as terminal_module
from wideload.dashboard.render import render_dashboard, sparkline
from wideload.metrics import MetricsSnapshot


def render_text(renderable, width=100, height=40):
    console = Console(file=io.StringIO(), width=width, height=height, color_system=None)
    console.print(renderable)
    return console.file.getvalue()


class TestSelectedTab:
    """Test clamped tab navigation."""

    def test_previous_on_first_tab_is_noop(self):
        assert SelectedTab.METRICS.previous() is SelectedTab.METRICS

    def test_next_on_last_tab_is_noop(self):
        assert SelectedTab.SYSTEM.next() is SelectedTab.SYSTEM

    def test_navigation_order(self):
        assert SelectedTab.METRICS.next() is SelectedTab.SAMPLES
        assert SelectedTab.SAMPLES.next() is SelectedTab.SYSTEM
        assert SelectedTab.SYSTEM.previous() is SelectedTab.SAMPLES


class TestDashboardState:
    """Test key handling and the read sample log."""

    def test_initial_state(self):
        state = DashboardState()
        assert state.selected_tab is SelectedTab.METRICS
        assert state.state is AppState.RUNNING
        assert not state.is_quitting

    @pytest.mark.parametrize("key", ["l", "right"])
    def test_next_tab_keys(self, key):
        state = DashboardState()
        state.handle_key(key)
        assert state.selected_tab is SelectedTab.SAMPLES

    @pytest.mark.parametrize("key", ["h", "left"])
    def test_previous_tab_keys(self, key):
        state = DashboardState(selected_tab=SelectedTab.SYSTEM)
        state.handle_key(key)
        assert state.selected_tab is SelectedTab.SAMPLES

    @pytest.mark.parametrize("key", ["q", "esc", "ctrl+c"])
    def test_quit_keys(self, key):
        state = DashboardState()
        state.handle_key(key)
        assert state.is_quitting

    def test_other_keys_ignored(self):
        state = DashboardState()
        for key in ("x", "up", "c", "Q"):
            state.handle_key(key)
        assert state.selected_tab is SelectedTab.METRICS
        assert not state.is_quitting

    def test_read_samples_bounded(self):
        state = DashboardState()
        state.add_samples(f"row {i}" for i in range(150))
        assert len(state.read_samples) == 100
        assert state.read_samples[0] == "row 50"
        assert state.read_samples[-1] == "row 149"


class TestDecodeKeys:
    """Test translation of raw terminal bytes into key names."""

    def test_plain_characters(self):
        assert decode_keys(b"lhq") == ["l", "h", "q"]

    def test_arrow_keys(self):
        assert decode_keys(b"\x1b[C\x1b[D") == ["right", "left"]
        assert decode_keys(b"\x1bOC") == ["right"]

    def test_lone_escape(self):
        assert decode_keys(b"\x1b") == ["esc"]

    def test_ctrl_c(self):
        assert decode_keys(b"\x03") == ["ctrl+c"]

    def test_unknown_sequence_skipped(self):
        # F5 is ESC [ 1 5 ~
        assert decode_keys(b"\x1b[15~l") == ["l"]


class TestRendering:
    """Test the rich renderables for each tab."""

    def test_sparkline_scales_to_peak(self):
        assert sparkline([0, 1, 7], 10) == "▁▂█"

    def test_sparkline_uses_most_recent_values(self):
        assert sparkline(list(range(1, 21)), 5) == sparkline(list(range(16, 21)), 5)
        assert len(sparkline(list(range(1, 21)), 5)) == 5

    def test_sparkline_all_zero(self):
        assert sparkline([0, 0, 0], 10) == "▁▁▁"

    def test_sparkline_empty(self):
        assert sparkline([], 10) == ""

    def test_metrics_tab(self):
        state = DashboardState()
        state.aggregator.update(MetricsSnapshot(queries=120, iter_queries=30, latency_avg_ms=1.5))
        output = render_text(render_dashboard(state, 100))
        assert "METRICS" in output
        assert "Writes (120 ops/s)" in output
        assert "Reads (30 ops/s)" in output
        assert "Average Latency (1.50 ms)" in output

    def test_samples_tab(self):
        state = DashboardState(selected_tab=SelectedTab.SAMPLES)
        state.add_samples(["first sample", "second sample"])
        output = render_text(render_dashboard(state, 100))
        assert "Read Samples" in output
        assert "second sample" in output

    def test_system_tab(self):
        state = DashboardState(selected_tab=SelectedTab.SYSTEM, cpu_percent=42.0, memory_percent=63.5)
        output = render_text(render_dashboard(state, 100))
        assert "CPU" in output
        assert "42.0%" in output
        assert "63.5%" in output


class TestDashboardLoop:
    """Test ticks, quitting and terminal restore."""

    @pytest.fixture
    def parts(self, store_client, telemetry):
        return store_client, CancellationSignal(), SampleQueue(10), telemetry

    def test_tick_updates_state(self, parts, make_display):
        store_client, cancel, samples, telemetry = parts
        display = make_display()
        loop = DashboardLoop(store_client, display, cancel, samples, telemetry=telemetry)

        samples.send("a row")
        loop.tick()

        assert list(loop.state.read_samples) == ["a row"]
        assert loop.state.cpu_percent == 12.5
        assert loop.state.memory_percent == 40.0
        assert len(loop.state.aggregator.history("writes")) == 1
        assert display.frames == 1

    def test_quit_key_cancels_and_restores(self, parts, make_display):
        store_client, cancel, samples, telemetry = parts
        display = make_display(keys_per_tick=[[], ["l"], ["q"]])
        loop = DashboardLoop(store_client, display, cancel, samples, tick_interval=0.01, telemetry=telemetry)

        loop.run()

        assert loop.ticks == 3
        assert loop.state.is_quitting
        assert loop.state.selected_tab is SelectedTab.SAMPLES
        assert cancel.is_cancelled()
        assert samples.closed
        assert display.initialized and display.restored

    def test_draw_failure_does_not_stop_loop(self, parts, make_display):
        store_client, cancel, samples, telemetry = parts
        display = make_display(keys_per_tick=[[], [], ["esc"]], fail_draw=True)
        loop = DashboardLoop(store_client, display, cancel, samples, tick_interval=0.01, telemetry=telemetry)

        loop.run()

        assert loop.ticks == 3
        assert display.restored

    def test_metrics_failure_does_not_stop_tick(self, parts, make_display):
        store_client, cancel, samples, telemetry = parts

        def broken():
            raise RuntimeError("metrics unavailable")

        store_client.get_metrics = broken
        display = make_display()
        loop = DashboardLoop(store_client, display, cancel, samples, telemetry=telemetry)

        loop.tick()

        assert display.frames == 1
        assert loop.state.aggregator.history("writes") == []

    def test_external_cancellation_exits_before_tick(self, parts, make_display):
        store_client, cancel, samples, telemetry = parts
        cancel.cancel()
        display = make_display()
        loop = DashboardLoop(store_client, display, cancel, samples, telemetry=telemetry)

        loop.run()

        assert loop.ticks == 0
        assert display.restored

    def test_init_failure_still_restores(self, parts, make_display):
        store_client, cancel, samples, telemetry = parts
        display = make_display(fail_init=True)
        loop = DashboardLoop(store_client, display, cancel, samples, telemetry=telemetry)

        with pytest.raises(RuntimeError, match="no terminal"):
            loop.run()

        assert loop.ticks == 0
        assert display.restored
        assert samples.closed


class FakeTty(io.StringIO):
    """Stand-in for stdin attached to a terminal."""

    def isatty(self):
        return True

    def fileno(self):
        return 0


class BrokenLive:
    """Live display whose start fails, as on an unusable terminal."""

    def __init__(self, *args, **kwargs):
        pass

    def start(self):
        raise RuntimeError("cannot enter alternate screen")


class TestTerminal:
    """Test terminal mode handling around the live display."""

    @pytest.fixture
    def tty_calls(self, monkeypatch):
        calls = []
        original = [0, 0, 0, termios.ISIG | termios.ECHO, 0, 0, []]
        monkeypatch.setattr(terminal_module.termios, "tcgetattr", lambda fd: list(original))
        monkeypatch.setattr(
            terminal_module.termios, "tcsetattr", lambda fd, when, attrs: calls.append(list(attrs))
        )
        monkeypatch.setattr(terminal_module.tty, "setcbreak", lambda fd: None)
        return original, calls

    def test_failed_start_restores_terminal_mode(self, tty_calls, monkeypatch):
        original, calls = tty_calls
        monkeypatch.setattr(terminal_module, "Live", BrokenLive)
        terminal = Terminal(console=Console(file=io.StringIO()), stdin=FakeTty())

        with pytest.raises(RuntimeError, match="alternate screen"):
            terminal.init()

        # First call disables signal keys, the last puts the saved attributes back
        assert not calls[0][3] & termios.ISIG
        assert calls[-1] == original

    def test_restore_after_failed_init_is_noop(self, tty_calls, monkeypatch):
        _, calls = tty_calls
        monkeypatch.setattr(terminal_module, "Live", BrokenLive)
        terminal = Terminal(console=Console(file=io.StringIO()), stdin=FakeTty())

        with pytest.raises(RuntimeError):
            terminal.init()
        count = len(calls)
        terminal.restore()

        assert len(calls) == count
