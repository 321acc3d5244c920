"""Shared fixtures: an in-memory store client and a scripted display surface."""

import threading
import time

import pytest

from wideload.store.client import StoreClient


class InMemoryStoreClient(StoreClient):
    """Store client that answers every read with canned rows."""

    def __init__(self, rows_per_read=1, fail_prepare=(), fail_writes=False, op_latency=0.001):
        super().__init__()
        self.rows_per_read = rows_per_read
        self.fail_prepare = fail_prepare
        self.fail_writes = fail_writes
        self.op_latency = op_latency
        self.prepared = []
        self.written = []
        self._written_lock = threading.Lock()

    def prepare(self, query):
        if any(marker in query for marker in self.fail_prepare):
            raise RuntimeError("prepare failed")
        self.prepared.append(query)
        return query

    def _run(self, handle, values):
        time.sleep(self.op_latency)
        if self.fail_writes:
            raise RuntimeError("write timeout")
        with self._written_lock:
            self.written.append(tuple(values))

    def _run_paged(self, handle, values):
        time.sleep(self.op_latency)
        return [("row", values[0], i) for i in range(self.rows_per_read)]


class ScriptedDisplay:
    """Display surface that replays a fixed sequence of key presses, one list per tick."""

    def __init__(self, keys_per_tick=None, fail_draw=False, fail_init=False, width=80):
        self.script = list(keys_per_tick or [])
        self.fail_draw = fail_draw
        self.fail_init = fail_init
        self.width = width
        self.initialized = False
        self.restored = False
        self.frames = 0
        self.last_frame = None

    def init(self):
        if self.fail_init:
            raise RuntimeError("no terminal")
        self.initialized = True

    def draw(self, render):
        if self.fail_draw:
            raise RuntimeError("draw failed")
        self.last_frame = render(self.width)
        self.frames += 1

    def poll_keys(self):
        return self.script.pop(0) if self.script else []

    def restore(self):
        self.restored = True


class StaticTelemetry:
    """Host telemetry stand-in with fixed readings."""

    def __init__(self, cpu=12.5, memory=40.0):
        self.cpu = cpu
        self.memory = memory

    def refresh(self):
        return self.cpu, self.memory


@pytest.fixture
def store_client():
    return InMemoryStoreClient()


@pytest.fixture
def make_store_client():
    return InMemoryStoreClient


@pytest.fixture
def make_display():
    return ScriptedDisplay


@pytest.fixture
def telemetry():
    return StaticTelemetry()
