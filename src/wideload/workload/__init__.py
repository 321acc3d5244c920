"""Workload generation module."""

from .pacing import PacingController, next_delay
from .payloads import PAYLOAD_CLASS_MAP, PayloadModel, create_payload
from .sampler import KeySampler

__all__ = ["KeySampler", "PacingController", "PayloadModel", "PAYLOAD_CLASS_MAP", "create_payload", "next_delay"]
