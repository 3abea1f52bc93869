"""Cassandra session and schema bootstrap.

The session comes from cassandra-asyncio-driver, so stores call
``await session.aexecute(...)``. Connecting is synchronous; everything after
it (keyspace, tables, indexes) goes through ``aexecute``.

Schema is owned by each module (``COMMUNITIES_TABLES_CQL`` and friends) and
applied here in dependency order.
"""

from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from src.appeals.models import APPEALS_TABLES_CQL
from src.communities.models import COMMUNITIES_TABLES_CQL
from src.config.settings import Settings, get_settings
from src.core.logging import get_logger
from src.notifications.models import NOTIFICATIONS_TABLES_CQL
from src.reports.models import REPORTS_TABLES_CQL


logger = get_logger(__name__)

# Appeals and reports reference communities, so communities go first
SCHEMA: dict[str, list[str]] = {
    "communities": COMMUNITIES_TABLES_CQL,
    "reports": REPORTS_TABLES_CQL,
    "appeals": APPEALS_TABLES_CQL,
    "notifications": NOTIFICATIONS_TABLES_CQL,
}


class CassandraConnection:
    """Owns one cluster and its session for the lifetime of the process."""

    def __init__(self) -> None:
        self.cluster: Cluster | None = None
        self.session = None

    def connect(self, settings: Settings):
        """Open the session, reusing it when already connected.

        Raises:
            ConnectionError: If no contact point answers
        """
        if self.session is not None:
            return self.session

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        self.cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(
                DCAwareRoundRobinPolicy(local_dc=settings.cassandra_datacenter)
            ),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            self.session = self.cluster.connect()
        except Exception as e:
            logger.error("cassandra_connection_failed", error=str(e))
            self.cluster.shutdown()
            self.cluster = None
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
            datacenter=settings.cassandra_datacenter,
        )
        return self.session

    def close(self) -> None:
        if self.session is not None:
            self.session.shutdown()
            self.session = None
        if self.cluster is not None:
            self.cluster.shutdown()
            self.cluster = None
            logger.info("cassandra_disconnected")


_connection = CassandraConnection()


def replication_options(settings: Settings) -> str:
    """CQL replication map for the keyspace.

    Production spreads replicas over the configured datacenter; every other
    environment runs on a single node.
    """
    if settings.is_production:
        dc = settings.cassandra_datacenter
        factor = settings.cassandra_replication_factor
        return f"{{'class': 'NetworkTopologyStrategy', '{dc}': {factor}}}"
    return "{'class': 'SimpleStrategy', 'replication_factor': 1}"


async def init_async_keyspace(session, settings: Settings) -> None:
    keyspace = settings.cassandra_keyspace
    await session.aexecute(
        f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
        f"WITH replication = {replication_options(settings)} "
        "AND durable_writes = true"
    )
    logger.info("cassandra_keyspace_ready", keyspace=keyspace)


async def init_async_tables(session, keyspace: str) -> None:
    """Create every module's tables and indexes."""
    for module, statements in SCHEMA.items():
        for cql_template in statements:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info(
            "cassandra_tables_ready",
            module=module,
            keyspace=keyspace,
            statements=len(statements),
        )


async def init_async_cassandra(settings: Settings | None = None):
    """Connect and make sure the keyspace and schema exist.

    Returns:
        Session bound to the Agora keyspace, with ``aexecute()`` support
    """
    settings = settings or get_settings()
    session = _connection.connect(settings)

    await init_async_keyspace(session, settings)
    session.set_keyspace(settings.cassandra_keyspace)
    await init_async_tables(session, settings.cassandra_keyspace)

    logger.info("cassandra_schema_ready", keyspace=settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    _connection.close()
