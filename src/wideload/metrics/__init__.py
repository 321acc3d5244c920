"""Metrics aggregation and telemetry module."""

from .aggregator import SERIES_NAMES, MetricsAggregator
from .models import MetricsSnapshot, RollingSeries
from .system import HostTelemetry

__all__ = ["HostTelemetry", "MetricsAggregator", "MetricsSnapshot", "RollingSeries", "SERIES_NAMES"]
