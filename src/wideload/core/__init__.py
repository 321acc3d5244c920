"""Core concurrency primitives shared by workers and the dashboard."""

from .cancellation import CancellationSignal, SampleQueue

__all__ = ["CancellationSignal", "SampleQueue"]
