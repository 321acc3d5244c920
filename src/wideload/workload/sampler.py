"""Key distribution sampler for workload generation."""

import itertools
import logging
import threading
import uuid
from typing import Dict, Optional

import numpy as np
from scipy import stats

logger = logging.getLogger(__name__)

SKEWED_DISTRIBUTIONS = ("normal", "poisson", "binomial", "geometric", "zipf")


class WeightedIndex:
    """Static weighted lookup over ``[0, len(weights))``.

    Sampling draws a uniform point in the cumulative weight range and
    binary-searches the table, so indices with zero weight are never chosen.
    """

    def __init__(self, weights: np.ndarray):
        self.size = len(weights)
        self.cumulative = np.cumsum(weights, dtype=np.int64)
        self.total = int(self.cumulative[-1]) if self.size else 0
        if self.total <= 0:
            raise ValueError("weighted index requires at least one positive weight")

    def sample(self, rng: np.random.Generator) -> int:
        point = rng.random() * self.total
        index = int(np.searchsorted(self.cumulative, point, side="right"))
        return min(index, self.size - 1)


class KeySampler:
    """Samples keys from a fixed candidate key set according to a distribution.

    The candidate set and every weight table are built once and never change
    for the lifetime of the sampler. A single instance is shared read-only by
    all workers; only the sequential counter is mutated, atomically.
    """

    def __init__(self, cardinality: int, distribution: str = "uniform", seed: Optional[int] = None):
        """Initialize the sampler.

        Args:
            cardinality: Number of candidate keys
            distribution: Distribution whose weight table is built immediately
            seed: Random seed for reproducible keys and weight tables
        """
        if cardinality < 1:
            raise ValueError(f"cardinality must be positive, got {cardinality}")

        self.cardinality = cardinality
        self.distribution = distribution
        self.seed = seed
        self.rng = np.random.default_rng(seed)

        # Candidate keys stored as raw 128-bit halves, materialised as UUIDs on demand
        self._key_bits = self.rng.integers(
            0, np.iinfo(np.uint64).max, size=(cardinality, 2), dtype=np.uint64, endpoint=True
        )

        self._sequence = itertools.count()
        self._sequence_lock = threading.Lock()
        self._tables: Dict[str, Optional[WeightedIndex]] = {}
        self._tables_lock = threading.Lock()

        self.prepare(distribution)
        logger.info(f"KeySampler initialized with {cardinality} candidate keys, distribution: {distribution}")

    def key(self, index: int) -> uuid.UUID:
        """Return the candidate key stored at ``index``."""
        high, low = self._key_bits[index]
        return uuid.UUID(int=(int(high) << 64) | int(low), version=4)

    def sample(self, distribution: Optional[str] = None) -> uuid.UUID:
        """Sample a candidate key.

        Args:
            distribution: Distribution kind; defaults to the configured one

        Returns:
            A key from the candidate set
        """
        return self.key(self.sample_index(distribution))

    def sample_index(self, distribution: Optional[str] = None) -> int:
        """Sample an index in ``[0, cardinality)``."""
        kind = distribution or self.distribution

        if kind == "sequential":
            with self._sequence_lock:
                counter = next(self._sequence)
            return counter % self.cardinality

        if kind in SKEWED_DISTRIBUTIONS:
            table = self.prepare(kind)
            if table is not None:
                return table.sample(self.rng)

        return int(self.rng.integers(0, self.cardinality))

    def prepare(self, distribution: str) -> Optional[WeightedIndex]:
        """Build (once) and return the weight table for a skewed distribution.

        Returns ``None`` for kinds that sample directly (sequential, uniform,
        unknown names) and for tables that ended up empty.
        """
        if distribution not in SKEWED_DISTRIBUTIONS:
            if distribution not in ("sequential", "uniform"):
                logger.warning(f"Unknown distribution: {distribution}, falling back to uniform")
            return None

        if distribution in self._tables:
            return self._tables[distribution]

        with self._tables_lock:
            if distribution not in self._tables:
                self._tables[distribution] = self._build_table(distribution)
        return self._tables[distribution]

    def _histogram(self, distribution: str) -> np.ndarray:
        return np.bincount(self._in_range(self._draw(distribution)), minlength=self.cardinality)

    def _build_table(self, distribution: str) -> Optional[WeightedIndex]:
        weights = self._histogram(distribution)
        if weights.sum() == 0:
            logger.warning(
                f"Distribution {distribution} produced no in-range draws for cardinality "
                f"{self.cardinality}, using uniform sampling"
            )
            return None

        logger.debug(
            f"Built {distribution} weight table: {int(np.count_nonzero(weights))} "
            f"of {self.cardinality} keys reachable"
        )
        return WeightedIndex(weights)

    def _draw(self, distribution: str) -> np.ndarray:
        """Draw ``cardinality`` values from the native distribution."""
        n = self.cardinality

        if distribution == "normal":
            return np.rint(self.rng.normal(n / 2.0, n / 6.0, size=n))

        elif distribution == "poisson":
            return self.rng.poisson(n / 2.0, size=n)

        elif distribution == "binomial":
            return self.rng.binomial(20, 0.3, size=n)

        elif distribution == "geometric":
            # numpy counts trials (support from 1); shift to count failures
            return self.rng.geometric(0.3, size=n) - 1

        elif distribution == "zipf":
            # Bounded zipf over ranks 1..n, drawn from its pmf in one vectorised pass
            ranks = np.arange(1, n + 1)
            p = stats.zipfian.pmf(ranks, 1.5, n)
            return self.rng.choice(ranks, size=n, p=p / p.sum())

        raise ValueError(f"Unknown skewed distribution: {distribution}")

    def _in_range(self, draws: np.ndarray) -> np.ndarray:
        mask = (draws >= 0) & (draws < self.cardinality)
        return draws[mask].astype(np.int64)
