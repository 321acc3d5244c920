"""Workload orchestration module."""

from .workers import reader_loop, writer_loop
from .workload_orchestrator import OrchestrationError, WorkloadOrchestrator

__all__ = ["OrchestrationError", "WorkloadOrchestrator", "reader_loop", "writer_loop"]
