"""Payload models describing what each workload kind reads and writes."""

import itertools
import logging
import random
import string
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Tuple, Type

from .sampler import KeySampler

logger = logging.getLogger(__name__)

KEYSPACE = "wideload"

ALPHANUMERIC = string.ascii_letters + string.digits


def random_alphanumeric(rng: random.Random, length: int) -> str:
    return "".join(rng.choices(ALPHANUMERIC, k=length))


class PayloadModel(ABC):
    """Contract for a workload kind: a write query with its value generator
    and a read query with its key generator.

    Subclasses draw their primary keys from the shared ``KeySampler`` so
    that reads target the same key universe the writers populate.
    """

    name: str = ""
    insert_query: str = ""
    select_query: str = ""
    table_ddl: str = ""

    def __init__(self, sampler: KeySampler):
        self.sampler = sampler
        # Column values follow the sampler seed so a seeded run generates the same value stream
        self.random = random.Random(sampler.seed)

    @abstractmethod
    def insert_values(self) -> Tuple[Any, ...]:
        """Generate bound values for one write."""
        pass

    @abstractmethod
    def select_values(self) -> Tuple[Any, ...]:
        """Generate bound values for one read."""
        pass

    def format_row(self, row: Any) -> str:
        """Render a read result row for the samples log."""
        return str(row)


class DevicesPayload(PayloadModel):
    """Time-series network interface counters partitioned by rack and sled."""

    name = "devices"

    table_ddl = f"""
        CREATE TABLE IF NOT EXISTS {KEYSPACE}.devices
        (
            kind             text,
            link_name        text,
            rack_id          uuid,
            sled_id          uuid,
            sled_model       text,
            sled_revision    int,
            sled_serial      text,
            zone_name        text,
            bytes_sent       int,
            bytes_received   int,
            packets_sent     int,
            packets_received int,
            time             timestamp,
            PRIMARY KEY ((rack_id, sled_id), time)
        )
    """

    insert_query = f"""
        INSERT INTO {KEYSPACE}.devices
        (
            kind, link_name, rack_id, sled_id, sled_model, sled_revision, sled_serial,
            zone_name, bytes_sent, bytes_received, packets_sent, packets_received, time
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """

    select_query = f"""
        SELECT
            kind, link_name, rack_id, sled_id, sled_model, sled_revision, sled_serial,
            zone_name, bytes_sent, bytes_received, packets_sent, packets_received, time
        FROM {KEYSPACE}.devices
        WHERE rack_id = ? AND sled_id = ? AND time > ?
    """

    RACK_COUNT = 3
    READ_WINDOW = timedelta(seconds=5)

    def __init__(self, sampler: KeySampler):
        super().__init__(sampler)
        self.racks = [uuid.UUID(int=self.random.getrandbits(128), version=4) for _ in range(self.RACK_COUNT)]
        self._rack_sequence = itertools.count()
        self._rack_lock = threading.Lock()

    def rack_id(self) -> uuid.UUID:
        if self.sampler.distribution == "sequential":
            with self._rack_lock:
                index = next(self._rack_sequence) % len(self.racks)
            return self.racks[index]
        return self.random.choice(self.racks)

    def insert_values(self) -> Tuple[Any, ...]:
        suffix = random_alphanumeric(self.random, 4)
        return (
            "vnic",
            f"l-{suffix}",
            self.rack_id(),
            self.sampler.sample(),
            f"m-{suffix}",
            self.random.randrange(0, 10),
            f"s-{suffix}",
            f"z-{suffix}",
            self.random.randrange(0, 1000),
            self.random.randrange(0, 1000),
            self.random.randrange(1000, 1000000),
            self.random.randrange(1000, 1000000),
            datetime.now(timezone.utc),
        )

    def select_values(self) -> Tuple[Any, ...]:
        return (
            self.rack_id(),
            self.sampler.sample(),
            datetime.now(timezone.utc) - self.READ_WINDOW,
        )


class UsersPayload(PayloadModel):
    """User profiles keyed by user id."""

    name = "users"

    table_ddl = f"""
        CREATE TABLE IF NOT EXISTS {KEYSPACE}.users
        (
            user_id    uuid PRIMARY KEY,
            username   text,
            email      text,
            created_at timestamp
        )
    """

    insert_query = f"""
        INSERT INTO {KEYSPACE}.users
        (
            user_id, username, email, created_at
        )
        VALUES (?, ?, ?, ?)
    """

    select_query = f"""
        SELECT user_id, username, email, created_at
        FROM {KEYSPACE}.users
        WHERE user_id = ?
    """

    def insert_values(self) -> Tuple[Any, ...]:
        return (
            self.sampler.sample(),
            random_alphanumeric(self.random, 8),
            f"{random_alphanumeric(self.random, 8)}@example.com",
            datetime.now(timezone.utc),
        )

    def select_values(self) -> Tuple[Any, ...]:
        return (self.sampler.sample(),)


class CachePayload(PayloadModel):
    """Key/value rows with a single integer value."""

    name = "cache"

    table_ddl = f"""
        CREATE TABLE IF NOT EXISTS {KEYSPACE}.cache
        (
            device_id   uuid PRIMARY KEY,
            temperature int
        )
    """

    insert_query = f"""
        INSERT INTO {KEYSPACE}.cache
        (
            device_id, temperature
        )
        VALUES (?, ?)
    """

    select_query = f"""
        SELECT device_id, temperature
        FROM {KEYSPACE}.cache
        WHERE device_id = ?
    """

    def insert_values(self) -> Tuple[Any, ...]:
        return (self.sampler.sample(), self.random.randrange(0, 100))

    def select_values(self) -> Tuple[Any, ...]:
        return (self.sampler.sample(),)


PAYLOAD_CLASS_MAP: Dict[str, Type[PayloadModel]] = {
    "devices": DevicesPayload,
    "users": UsersPayload,
    "cache": CachePayload,
}


def create_payload(kind: str, sampler: KeySampler) -> PayloadModel:
    """Instantiate the payload model registered under ``kind``."""
    PayloadClass = PAYLOAD_CLASS_MAP.get(kind)
    if not PayloadClass:
        raise ValueError(f"Unknown payload type: {kind}")

    payload = PayloadClass(sampler)
    logger.info(f"Created {kind} payload model")
    return payload
