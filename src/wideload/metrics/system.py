"""Host CPU and memory telemetry."""

import logging
from typing import Tuple

import psutil

logger = logging.getLogger(__name__)


class HostTelemetry:
    """Samples system-wide CPU and memory utilisation in percent."""

    def __init__(self):
        # The first cpu_percent call only primes the counters and reports 0
        psutil.cpu_percent(interval=None)
        self.cpu_percent = 0.0
        self.memory_percent = 0.0

    def refresh(self) -> Tuple[float, float]:
        self.cpu_percent = psutil.cpu_percent(interval=None)
        self.memory_percent = psutil.virtual_memory().percent
        return self.cpu_percent, self.memory_percent
