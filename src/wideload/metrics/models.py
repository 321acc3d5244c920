"""Data models for metrics collection."""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, List, Optional, Union

Number = Union[int, float]

HISTORY_CAPACITY = 100


@dataclass(frozen=True)
class MetricsSnapshot:
    """Cumulative store-client counters captured once per dashboard tick."""

    queries: int = 0
    iter_queries: int = 0
    errors: int = 0
    iter_errors: int = 0

    # Latency in milliseconds, None until the client has completed an operation
    latency_avg_ms: Optional[float] = None
    latency_p999_ms: Optional[float] = None


class RollingSeries:
    """Bounded FIFO of numeric samples; the oldest entry is evicted once full."""

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._values: Deque[Number] = deque()

    def push(self, value: Number) -> None:
        self._values.append(value)
        self.trim()

    def trim(self) -> None:
        while len(self._values) > self.capacity:
            self._values.popleft()

    def last(self, default: Number = 0) -> Number:
        return self._values[-1] if self._values else default

    def values(self) -> List[Number]:
        return list(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Number]:
        return iter(self._values)
