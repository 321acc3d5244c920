"""
Unit tests for store client counters, the sample queue and cancellation.
"""

import threading
from unittest.mock import Mock

import pytest
from cassandra import ConsistencyLevel
from cassandra.cluster import EXEC_PROFILE_DEFAULT

from wideload.core.cancellation import CancellationSignal, SampleQueue
from wideload.store import client as client_module
from wideload.store.client import CassandraStoreClient, StoreConnectionError
from wideload.utils.config import ConnectionConfig


class TestStoreClientCounters:
    """Test cumulative counters and latency reporting."""

    def test_no_requests_reports_no_latency(self, store_client):
        snapshot = store_client.get_metrics()
        assert snapshot.queries == 0
        assert snapshot.iter_queries == 0
        assert snapshot.latency_avg_ms is None
        assert snapshot.latency_p999_ms is None

    def test_writes_count_as_queries(self, store_client):
        for _ in range(3):
            store_client.execute("INSERT", (1,))
        snapshot = store_client.get_metrics()
        assert snapshot.queries == 3
        assert snapshot.errors == 0
        assert len(store_client.written) == 3

    def test_reads_count_as_iter_queries(self, make_store_client):
        client = make_store_client(rows_per_read=4)
        rows = list(client.execute_iter("SELECT", ("key",)))
        snapshot = client.get_metrics()
        assert len(rows) == 4
        assert snapshot.iter_queries == 1
        assert snapshot.queries == 0

    def test_latency_reported_in_milliseconds(self, make_store_client):
        client = make_store_client(op_latency=0.005)
        for _ in range(5):
            client.execute("INSERT", (1,))
        snapshot = client.get_metrics()
        assert 4.0 <= snapshot.latency_avg_ms < 1000.0
        assert snapshot.latency_p999_ms >= snapshot.latency_avg_ms * 0.99

    def test_failed_write_counts_error_and_propagates(self, make_store_client):
        client = make_store_client(fail_writes=True)
        with pytest.raises(RuntimeError, match="write timeout"):
            client.execute("INSERT", (1,))
        snapshot = client.get_metrics()
        assert snapshot.queries == 1
        assert snapshot.errors == 1

    def test_failed_read_counts_iter_error(self, store_client):
        def broken(handle, values):
            raise RuntimeError("read timeout")

        store_client._run_paged = broken
        with pytest.raises(RuntimeError):
            list(store_client.execute_iter("SELECT", ("key",)))
        snapshot = store_client.get_metrics()
        assert snapshot.iter_queries == 1
        assert snapshot.iter_errors == 1
        assert snapshot.errors == 0

    def test_counters_are_thread_safe(self, make_store_client):
        client = make_store_client(op_latency=0)

        def worker():
            for _ in range(200):
                client.execute("INSERT", (1,))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert client.get_metrics().queries == 1600


class TestSampleQueue:
    """Test the bounded read sample queue."""

    def test_send_and_drain_in_order(self):
        samples = SampleQueue(10)
        for i in range(3):
            assert samples.send(f"row {i}")
        assert samples.drain() == ["row 0", "row 1", "row 2"]
        assert samples.drain() == []

    def test_full_queue_drops(self):
        samples = SampleQueue(2)
        assert samples.send("a")
        assert samples.send("b")
        assert not samples.send("c")
        assert samples.dropped == 1
        assert samples.drain() == ["a", "b"]

    def test_closed_queue_rejects(self):
        samples = SampleQueue(2)
        samples.close()
        assert samples.closed
        assert not samples.send("a")
        assert samples.drain() == []


class TestCancellationSignal:
    """Test the one-way cancellation flag."""

    def test_starts_active(self):
        assert not CancellationSignal().is_cancelled()

    def test_cancel_is_permanent(self):
        cancel = CancellationSignal()
        cancel.cancel()
        cancel.cancel()
        assert cancel.is_cancelled()

    def test_wait_wakes_on_cancel(self):
        cancel = CancellationSignal()
        threading.Timer(0.05, cancel.cancel).start()
        assert cancel.wait(5.0)

    def test_wait_times_out(self):
        assert not CancellationSignal().wait(0.01)


class FakeCluster:
    """Cluster stand-in whose first ``failures`` connect attempts fail."""

    instances = []
    failures = 0

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.shut_down = False
        FakeCluster.instances.append(self)

    def connect(self):
        if len(FakeCluster.instances) <= FakeCluster.failures:
            raise ConnectionRefusedError("connection refused")
        return Mock(name="session")

    def shutdown(self):
        self.shut_down = True


class TestCassandraStoreClient:
    """Test the driver-backed client with a fake cluster and session."""

    @pytest.fixture
    def fake_cluster(self, monkeypatch):
        FakeCluster.instances = []
        FakeCluster.failures = 0
        sleeps = []
        monkeypatch.setattr(client_module, "Cluster", FakeCluster)
        monkeypatch.setattr(client_module.time, "sleep", sleeps.append)
        return sleeps

    def test_connect_applies_settings(self, fake_cluster):
        config = ConnectionConfig(host="10.1.2.3:19042", username="scylla", password="secret", consistency_level="one")
        client = CassandraStoreClient.connect(config)

        kwargs = FakeCluster.instances[0].kwargs
        assert kwargs["contact_points"] == ["10.1.2.3"]
        assert kwargs["port"] == 19042
        assert kwargs["auth_provider"] is not None
        profile = kwargs["execution_profiles"][EXEC_PROFILE_DEFAULT]
        assert profile.consistency_level == ConsistencyLevel.ONE
        assert client.session is not None

    def test_connect_without_credentials(self, fake_cluster):
        CassandraStoreClient.connect(ConnectionConfig())
        assert FakeCluster.instances[0].kwargs["auth_provider"] is None

    def test_connect_retries_with_backoff(self, fake_cluster):
        FakeCluster.failures = 3
        CassandraStoreClient.connect(ConnectionConfig(max_connect_delay=1.5))

        assert len(FakeCluster.instances) == 4
        assert all(cluster.shut_down for cluster in FakeCluster.instances[:3])
        assert fake_cluster == [0.5, 1.0, 1.5]

    def test_connect_gives_up_after_timeout(self, fake_cluster):
        FakeCluster.failures = 100
        with pytest.raises(StoreConnectionError, match="connection refused"):
            CassandraStoreClient.connect(ConnectionConfig(connect_timeout=1.0))
        assert len(FakeCluster.instances) < 100

    def test_execute_goes_through_session(self):
        session = Mock()
        session.execute.return_value = [("a",), ("b",)]
        client = CassandraStoreClient(Mock(), session)

        handle = client.prepare("SELECT 1")
        rows = list(client.execute_iter(handle, ("key",)))
        client.execute(handle, ("key",))

        session.prepare.assert_called_once_with("SELECT 1")
        assert rows == [("a",), ("b",)]
        snapshot = client.get_metrics()
        assert snapshot.queries == 1
        assert snapshot.iter_queries == 1

    def test_schema_statements_bypass_counters(self):
        session = Mock()
        client = CassandraStoreClient(Mock(), session)
        client.execute_schema("CREATE KEYSPACE x")
        session.execute.assert_called_once_with("CREATE KEYSPACE x")
        assert client.get_metrics().queries == 0

    def test_close_shuts_down_cluster(self):
        cluster = Mock()
        CassandraStoreClient(cluster, Mock()).close()
        cluster.shutdown.assert_called_once()
