"""Utility modules."""

from .config import ConfigurationError, ConnectionConfig, OutputConfig, RunConfig, WorkloadConfig

__all__ = ["ConfigurationError", "ConnectionConfig", "OutputConfig", "RunConfig", "WorkloadConfig"]
