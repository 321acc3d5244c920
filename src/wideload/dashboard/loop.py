"""Dashboard loop: metrics polling, sample draining, rendering and input."""

import logging
from typing import Optional

from ..core.cancellation import CancellationSignal, SampleQueue
from ..metrics.system import HostTelemetry
from .render import render_dashboard
from .state import DashboardState

logger = logging.getLogger(__name__)


class DashboardLoop:
    """Single cooperative loop that owns the dashboard state.

    Each tick pulls a metrics snapshot from the store client, drains queued
    read samples, draws the selected tab and polls the keyboard. A failure in
    any of those steps is logged and the loop carries on with the next tick.
    The display surface is always restored on exit.
    """

    def __init__(
        self,
        store_client,
        display,
        cancel: CancellationSignal,
        samples: SampleQueue,
        tick_interval: float = 1.0,
        telemetry: Optional[HostTelemetry] = None,
        state: Optional[DashboardState] = None,
    ):
        """Initialize the dashboard loop.

        Args:
            store_client: Source of cumulative metrics snapshots
            display: Display surface with init/draw/poll_keys/restore
            cancel: Signal flipped when the user quits
            samples: Queue of formatted read results posted by readers
            tick_interval: Seconds to sleep between ticks
            telemetry: Host CPU/memory sampler
            state: Initial state, mainly for tests
        """
        self.store_client = store_client
        self.display = display
        self.cancel = cancel
        self.samples = samples
        self.tick_interval = tick_interval
        self.telemetry = telemetry or HostTelemetry()
        self.state = state or DashboardState()
        self.ticks = 0

    def run(self) -> None:
        try:
            self.display.init()
            while not self.cancel.is_cancelled():
                self.tick()

                if self.state.is_quitting or self.cancel.is_cancelled():
                    logger.debug("Dashboard quitting or cancellation requested, leaving loop")
                    break

                self.cancel.wait(self.tick_interval)
        finally:
            self.samples.close()
            self.display.restore()
            logger.info(f"Dashboard stopped after {self.ticks} ticks")

    def tick(self) -> None:
        with self.state.lock:
            self._update_metrics()
            self.state.add_samples(self.samples.drain())

            try:
                self.display.draw(lambda width: render_dashboard(self.state, width))
            except Exception as e:
                logger.error(f"Error drawing frame: {e}")

            try:
                for key in self.display.poll_keys():
                    self.state.handle_key(key)
            except Exception as e:
                logger.error(f"Error handling events: {e}")

            quitting = self.state.is_quitting

        self.ticks += 1
        if quitting:
            self.cancel.cancel()

    def _update_metrics(self) -> None:
        try:
            self.state.aggregator.update(self.store_client.get_metrics())
        except Exception as e:
            logger.error(f"Error fetching metrics: {e}")

        try:
            self.state.cpu_percent, self.state.memory_percent = self.telemetry.refresh()
        except Exception as e:
            logger.error(f"Error refreshing host telemetry: {e}")
