"""Store client: prepared statement execution and cumulative metrics."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Iterable, Iterator, Optional, Sequence

from cassandra import ConsistencyLevel
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import EXEC_PROFILE_DEFAULT, Cluster, ExecutionProfile, Session
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from hdrh.histogram import HdrHistogram

from ..metrics.models import MetricsSnapshot
from ..utils.config import ConnectionConfig

logger = logging.getLogger(__name__)

# Latencies are recorded in microseconds, up to one minute
LATENCY_LOWEST_US = 1
LATENCY_HIGHEST_US = 60 * 1000 * 1000
LATENCY_SIGNIFICANT_FIGURES = 3


class StoreConnectionError(Exception):
    """Raised when the cluster cannot be reached within the connect timeout."""
    pass


class StoreClient(ABC):
    """Executes prepared statements and keeps cumulative counters.

    Writes go through ``execute`` and count as queries; reads go through
    ``execute_iter`` and count as iteration queries. Every completed request
    records its latency in an HDR histogram. All bookkeeping is thread-safe,
    so a single client is shared by every worker.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._queries = 0
        self._iter_queries = 0
        self._errors = 0
        self._iter_errors = 0
        self._histogram = HdrHistogram(LATENCY_LOWEST_US, LATENCY_HIGHEST_US, LATENCY_SIGNIFICANT_FIGURES)

    @abstractmethod
    def prepare(self, query: str) -> Any:
        """Prepare ``query`` and return a handle usable from any thread."""
        pass

    @abstractmethod
    def _run(self, handle: Any, values: Sequence[Any]) -> Any:
        pass

    @abstractmethod
    def _run_paged(self, handle: Any, values: Sequence[Any]) -> Iterable[Any]:
        pass

    def close(self) -> None:
        pass

    def execute(self, handle: Any, values: Sequence[Any]) -> None:
        """Execute a write and wait for the acknowledgement."""
        with self._lock:
            self._queries += 1

        start = time.perf_counter()
        try:
            self._run(handle, values)
        except Exception:
            with self._lock:
                self._errors += 1
            raise
        self._record_latency(time.perf_counter() - start)

    def execute_iter(self, handle: Any, values: Sequence[Any]) -> Iterator[Any]:
        """Execute a paged read, yielding rows as pages arrive."""
        with self._lock:
            self._iter_queries += 1

        start = time.perf_counter()
        try:
            rows = self._run_paged(handle, values)
            self._record_latency(time.perf_counter() - start)
            for row in rows:
                yield row
        except Exception:
            with self._lock:
                self._iter_errors += 1
            raise

    def get_metrics(self) -> MetricsSnapshot:
        with self._lock:
            completed = self._histogram.get_total_count()
            avg_ms: Optional[float] = None
            p999_ms: Optional[float] = None
            if completed:
                avg_ms = self._histogram.get_mean_value() / 1000.0
                p999_ms = self._histogram.get_value_at_percentile(99.9) / 1000.0

            return MetricsSnapshot(
                queries=self._queries,
                iter_queries=self._iter_queries,
                errors=self._errors,
                iter_errors=self._iter_errors,
                latency_avg_ms=avg_ms,
                latency_p999_ms=p999_ms,
            )

    def _record_latency(self, seconds: float) -> None:
        micros = int(seconds * 1_000_000)
        micros = min(max(micros, LATENCY_LOWEST_US), LATENCY_HIGHEST_US)
        with self._lock:
            self._histogram.record_value(micros)


class CassandraStoreClient(StoreClient):
    """Store client backed by the DataStax/Scylla Python driver."""

    def __init__(self, cluster: Cluster, session: Session):
        super().__init__()
        self.cluster = cluster
        self.session = session

    @classmethod
    def connect(cls, config: ConnectionConfig) -> "CassandraStoreClient":
        """Connect to the cluster, retrying with exponential backoff.

        Args:
            config: Connection settings

        Returns:
            Connected client

        Raises:
            StoreConnectionError: If no connection succeeds within
                ``config.connect_timeout`` seconds
        """
        profile = ExecutionProfile(
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy(local_dc=config.datacenter)),
            consistency_level=ConsistencyLevel.name_to_value[config.consistency_level],
        )
        auth_provider = None
        if config.username:
            auth_provider = PlainTextAuthProvider(username=config.username, password=config.password)

        logger.info(
            f"Connecting to {config.contact_point}:{config.port} "
            f"(datacenter: {config.datacenter}, CL: {config.consistency_level})"
        )

        deadline = time.monotonic() + config.connect_timeout
        delay = 0.5
        attempt = 0
        while True:
            attempt += 1
            cluster = Cluster(
                contact_points=[config.contact_point],
                port=config.port,
                auth_provider=auth_provider,
                execution_profiles={EXEC_PROFILE_DEFAULT: profile},
            )
            try:
                session = cluster.connect()
                logger.info(f"Connected after {attempt} attempt(s)")
                return cls(cluster, session)
            except Exception as e:
                cluster.shutdown()
                if time.monotonic() + delay > deadline:
                    raise StoreConnectionError(f"Error connecting to the database: {e}") from e
                logger.warning(f"Connection attempt {attempt} failed: {e}; retrying in {delay:.1f}s")
                time.sleep(delay)
                delay = min(delay * 2, config.max_connect_delay)

    def prepare(self, query: str) -> Any:
        return self.session.prepare(query)

    def execute_schema(self, statement: str) -> None:
        """Run a schema statement outside of the workload counters."""
        self.session.execute(statement)

    def _run(self, handle: Any, values: Sequence[Any]) -> Any:
        return self.session.execute(handle, values)

    def _run_paged(self, handle: Any, values: Sequence[Any]) -> Iterable[Any]:
        return self.session.execute(handle, values)

    def close(self) -> None:
        logger.info("Shutting down cluster connection")
        self.cluster.shutdown()
