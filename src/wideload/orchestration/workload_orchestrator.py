"""Workload orchestrator for managing reader, writer and dashboard tasks."""

import json
import logging
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, as_completed, wait
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..core.cancellation import CancellationSignal, SampleQueue
from ..dashboard.loop import DashboardLoop
from ..metrics.system import HostTelemetry
from ..store.client import StoreClient
from ..utils.config import OutputConfig, WorkloadConfig
from ..workload.payloads import PayloadModel, create_payload
from ..workload.sampler import KeySampler
from .workers import reader_loop, writer_loop

logger = logging.getLogger(__name__)


class OrchestrationError(Exception):
    """Raised when the reader, writer or dashboard task fails."""
    pass


class WorkloadOrchestrator:
    """Owns worker lifecycle for one run.

    Three constituent tasks run concurrently: a reader launcher, a writer
    launcher and the dashboard loop. All of them share one store client, one
    key sampler and one cancellation signal. ``run`` returns only after all
    three have finished.
    """

    def __init__(
        self,
        config: WorkloadConfig,
        store_client: StoreClient,
        display,
        output: Optional[OutputConfig] = None,
        sampler: Optional[KeySampler] = None,
        payload: Optional[PayloadModel] = None,
        telemetry: Optional[HostTelemetry] = None,
    ):
        """Initialize the orchestrator.

        Args:
            config: Workload configuration
            store_client: Client shared by every worker and the dashboard
            display: Display surface driven by the dashboard loop
            output: Where to save the run summary and metrics history
            sampler: Pre-built key sampler; built from ``config`` if omitted
            payload: Pre-built payload model; built from ``config`` if omitted
            telemetry: Host telemetry source for the dashboard
        """
        self.config = config
        self.store_client = store_client
        self.output = output

        self.sampler = sampler or KeySampler(config.cardinality, config.distribution, config.seed)
        self.payload = payload or create_payload(config.payload, self.sampler)

        self.cancel = CancellationSignal()
        self.samples = SampleQueue(config.sample_queue_size)
        self.dashboard = DashboardLoop(
            store_client,
            display,
            self.cancel,
            self.samples,
            tick_interval=config.tick_interval,
            telemetry=telemetry,
        )

        self.started_workers: Dict[str, int] = {"reader": 0, "writer": 0}

        logger.info(
            f"WorkloadOrchestrator initialized: {config.readers} readers, {config.writers} writers, "
            f"payload: {config.payload}, distribution: {config.distribution}"
        )

    def run(self) -> Dict[str, Any]:
        """Run the workload until the user quits or a task fails.

        Returns:
            Summary report dictionary

        Raises:
            OrchestrationError: If any of the three constituent tasks failed
        """
        logger.info("=" * 60)
        logger.info("STARTING WORKLOAD")
        logger.info("=" * 60)

        started = time.monotonic()
        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="wideload") as executor:
            tasks = {
                executor.submit(self._launch_readers): "reader launcher",
                executor.submit(self._launch_writers): "writer launcher",
                executor.submit(self.dashboard.run): "dashboard",
            }

            try:
                wait(tasks, return_when=FIRST_EXCEPTION)
            except KeyboardInterrupt:
                logger.warning("Interrupted, shutting down workload")

            # Either everything finished or something failed; make sure the rest wind down
            self.cancel.cancel()
            wait(tasks)

        failures = [(name, task.exception()) for task, name in tasks.items() if task.exception() is not None]
        for name, error in failures:
            logger.error(f"{name} task failed: {error!r}")
        if failures:
            name, error = failures[0]
            raise OrchestrationError(f"{name} task failed: {error}") from error

        summary = self.summary(time.monotonic() - started)
        self._save_reports(summary)

        logger.info("=" * 60)
        logger.info("WORKLOAD COMPLETED")
        logger.info("=" * 60)
        return summary

    def _launch_readers(self) -> int:
        return self._launch(
            "reader",
            self.config.readers,
            lambda worker_id: reader_loop(
                worker_id, self.store_client, self.payload, self.config, self.cancel, self.samples
            ),
        )

    def _launch_writers(self) -> int:
        return self._launch(
            "writer",
            self.config.writers,
            lambda worker_id: writer_loop(
                worker_id, self.store_client, self.payload, self.config, self.cancel
            ),
        )

    def _launch(self, kind: str, count: int, loop: Callable[[str], bool]) -> int:
        """Spawn ``count`` worker loops and join them.

        A worker that fails to start or dies unexpectedly only takes itself
        down; the launcher keeps waiting for the others.

        Returns:
            Number of workers that started successfully
        """
        if count <= 0:
            logger.info(f"No {kind} workers configured")
            return 0

        started = 0
        with ThreadPoolExecutor(max_workers=count, thread_name_prefix=kind) as executor:
            futures = {executor.submit(loop, f"{kind}-{i}"): i for i in range(count)}
            logger.info(f"Spawned {count} {kind} workers")

            for future in as_completed(futures):
                try:
                    if future.result():
                        started += 1
                except Exception:
                    logger.exception(f"{kind}-{futures[future]} terminated unexpectedly")

        self.started_workers[kind] = started
        if started < count:
            logger.warning(f"{count - started} of {count} {kind} workers did not run")
        return started

    def summary(self, duration_s: float) -> Dict[str, Any]:
        """Build the run summary from the store client's final counters."""
        snapshot = self.store_client.get_metrics()
        return {
            "duration_s": round(duration_s, 3),
            "payload": self.config.payload,
            "distribution": self.config.distribution,
            "cardinality": self.config.cardinality,
            "workers": {
                "readers": self.config.readers,
                "writers": self.config.writers,
                "readers_started": self.started_workers["reader"],
                "writers_started": self.started_workers["writer"],
            },
            "totals": {
                "writes": snapshot.queries,
                "reads": snapshot.iter_queries,
                "write_errors": snapshot.errors,
                "read_errors": snapshot.iter_errors,
            },
            "latency_ms": {
                "average": snapshot.latency_avg_ms,
                "p99_9": snapshot.latency_p999_ms,
            },
            "dashboard_ticks": self.dashboard.ticks,
            "dropped_samples": self.samples.dropped,
        }

    def _save_reports(self, summary: Dict[str, Any]) -> None:
        if self.output is None:
            return

        if self.output.summary_json_path:
            summary_file = Path(self.output.summary_json_path)
            summary_file.parent.mkdir(parents=True, exist_ok=True)
            with open(summary_file, "w") as f:
                json.dump(summary, f, indent=2)
            logger.info(f"Saved summary report to {summary_file}")

        if self.output.history_csv_path:
            csv_file = Path(self.output.history_csv_path)
            csv_file.parent.mkdir(parents=True, exist_ok=True)
            df = self.dashboard.state.aggregator.to_dataframe()
            df.to_csv(csv_file, index_label="tick")
            logger.info(f"Saved metrics history to {csv_file}")
