"""Waveform pacing for worker loops."""

import math


def waveform_rate(rate_min: float, rate_max: float, rate_period: float, elapsed: float) -> float:
    """Return the target operations/second at ``elapsed`` seconds into the run.

    The rate follows a repeating rise / peak / fall / trough waveform of
    ``rate_period`` seconds when both bounds are positive, and stays at
    ``rate_max`` otherwise (including when ``rate_period`` is zero).
    """
    if rate_min <= 0 or rate_max <= 0 or rate_period <= 0:
        return rate_max

    quarter = rate_period / 4.0
    t = elapsed % rate_period

    if t < quarter:
        # Rise
        return rate_min + (rate_max - rate_min) * (t / quarter)
    elif t < 2.0 * quarter:
        # Peak
        return rate_max
    elif t < 3.0 * quarter:
        # Fall
        return rate_max - (rate_max - rate_min) * ((t - 2.0 * quarter) / quarter)
    else:
        # Trough
        return rate_min


def target_delay(rate: float) -> float:
    """Inter-iteration delay in seconds for ``rate`` ops/s, in whole milliseconds.

    A non-positive rate means unthrottled.
    """
    if rate <= 0:
        return 0.0
    return math.floor(max(1.0, 1000.0 / rate)) / 1000.0


def next_delay(
    rate_min: float,
    rate_max: float,
    rate_period: float,
    elapsed: float,
    op_duration: float = 0.0,
) -> float:
    """Compute how long a worker should sleep before its next iteration.

    Args:
        rate_min: Trough rate in ops/s (0 disables the waveform)
        rate_max: Peak rate in ops/s (0 means unthrottled)
        rate_period: Waveform period in seconds
        elapsed: Seconds since the worker started
        op_duration: Seconds already spent executing the current operation

    Returns:
        Delay in seconds, never negative
    """
    delay = target_delay(waveform_rate(rate_min, rate_max, rate_period, elapsed))
    return max(0.0, delay - op_duration)


class PacingController:
    """Per-worker pacing bound to a fixed rate configuration and start time."""

    def __init__(self, rate_min: float, rate_max: float, rate_period: float, start_time: float):
        self.rate_min = rate_min
        self.rate_max = rate_max
        self.rate_period = rate_period
        self.start_time = start_time

    @classmethod
    def from_config(cls, config, start_time: float) -> "PacingController":
        return cls(config.rate_min, config.rate_max, config.rate_period, start_time)

    def delay(self, now: float, op_duration: float) -> float:
        return next_delay(self.rate_min, self.rate_max, self.rate_period, now - self.start_time, op_duration)
