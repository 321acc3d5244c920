"""Data store client module."""

from .client import CassandraStoreClient, StoreClient, StoreConnectionError
from .schema import ensure_schema

__all__ = ["CassandraStoreClient", "StoreClient", "StoreConnectionError", "ensure_schema"]
