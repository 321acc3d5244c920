"""Keyspace and table bootstrap for the selected payload."""

import logging
from typing import List, Optional

from ..utils.config import ConnectionConfig
from ..workload.payloads import KEYSPACE, PayloadModel

logger = logging.getLogger(__name__)


def keyspace_ddl(replication_factor: int, tablets: Optional[int] = None) -> str:
    """Build the CREATE KEYSPACE statement.

    ``tablets`` of None omits the tablets clause entirely, 0 disables
    tablets, and any positive value enables them with that many initial
    tablets.
    """
    statement = (
        f"CREATE KEYSPACE IF NOT EXISTS {KEYSPACE} WITH replication = "
        f"{{'class': 'NetworkTopologyStrategy', 'replication_factor': {replication_factor}}}"
    )
    if tablets is not None:
        if tablets > 0:
            statement += f" AND tablets = {{'enabled': true, 'initial': {tablets}}}"
        else:
            statement += " AND tablets = {'enabled': false}"
    return statement


def schema_statements(payload: PayloadModel, config: ConnectionConfig) -> List[str]:
    return [
        keyspace_ddl(config.replication_factor, config.tablets),
        " ".join(payload.table_ddl.split()),
    ]


def ensure_schema(client, payload: PayloadModel, config: ConnectionConfig) -> None:
    """Create the keyspace and the payload's table if they do not exist."""
    for statement in schema_statements(payload, config):
        logger.debug(f"Running migration: {statement}")
        client.execute_schema(statement)
    logger.info(f"Schema ready for payload {payload.name}")
