"""Cancellation signal and the read-sample notification queue."""

import logging
import queue
import threading
from typing import List, Optional

logger = logging.getLogger(__name__)


class CancellationSignal:
    """Process-wide one-way flag: starts active, is cancelled once, never reverts."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        if not self._event.is_set():
            logger.info("Cancellation requested")
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Sleep up to ``timeout`` seconds, waking early on cancellation.

        Returns:
            True if the signal is cancelled
        """
        return self._event.wait(timeout)


class SampleQueue:
    """Bounded many-producer / single-consumer queue of formatted read results.

    Sending never blocks: when the queue is full or the consumer has closed
    it, the sample is dropped and the drop is logged.
    """

    def __init__(self, maxsize: int = 1000):
        self._queue: "queue.Queue[str]" = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()
        self.dropped = 0

    def send(self, sample: str) -> bool:
        """Offer a sample; returns False if it was dropped."""
        if self._closed.is_set():
            logger.debug("Sample queue closed, dropping read sample")
            return False
        try:
            self._queue.put_nowait(sample)
        except queue.Full:
            self.dropped += 1
            logger.debug("Sample queue full, dropping read sample")
            return False
        return True

    def drain(self) -> List[str]:
        """Take everything currently queued without waiting for more."""
        samples = []
        while True:
            try:
                samples.append(self._queue.get_nowait())
            except queue.Empty:
                return samples

    def close(self) -> None:
        self._closed.set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()
