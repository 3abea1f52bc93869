"""Cassandra connection and schema bootstrap."""

from src.core.database.async_cassandra import (
    CassandraConnection,
    init_async_cassandra,
    replication_options,
    shutdown_async_cassandra,
)


__all__ = [
    "CassandraConnection",
    "init_async_cassandra",
    "replication_options",
    "shutdown_async_cassandra",
]
