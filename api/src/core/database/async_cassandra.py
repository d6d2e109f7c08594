"""Cassandra connection and schema bootstrap.

Sessions come from cassandra-asyncio-driver, which adds ``aexecute()`` to
the regular cassandra-driver session. Every module declares its tables in
a ``*_TABLES_CQL`` list; they are created at startup in ``SCHEMA`` order.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from src.auth.models import AUTH_TABLES_CQL
from src.billing.models import BILLING_TABLES_CQL
from src.catalog.models import CATALOG_TABLES_CQL
from src.companies.models import COMPANY_TABLES_CQL
from src.config.settings import Settings, get_settings
from src.progress.models import PROGRESS_TABLES_CQL


logger = structlog.get_logger(__name__)


SCHEMA: list[tuple[str, list[str]]] = [
    ("auth", AUTH_TABLES_CQL),
    ("catalog", CATALOG_TABLES_CQL),
    ("progress", PROGRESS_TABLES_CQL),
    ("companies", COMPANY_TABLES_CQL),
    ("billing", BILLING_TABLES_CQL),
]


def keyspace_cql(settings: Settings) -> str:
    """CREATE KEYSPACE statement for the configured topology.

    With ``cassandra_local_dc`` set, replication is per datacenter.
    """
    factor = settings.cassandra_replication_factor
    if settings.cassandra_local_dc:
        replication = (
            f"'class': 'NetworkTopologyStrategy', '{settings.cassandra_local_dc}': {factor}"
        )
    else:
        replication = f"'class': 'SimpleStrategy', 'replication_factor': {factor}"
    return (
        f"CREATE KEYSPACE IF NOT EXISTS {settings.cassandra_keyspace} "
        f"WITH replication = {{{replication}}} AND durable_writes = true"
    )


def _build_cluster(settings: Settings) -> Cluster:
    auth_provider = None
    if settings.cassandra_username and settings.cassandra_password:
        auth_provider = PlainTextAuthProvider(
            username=settings.cassandra_username,
            password=settings.cassandra_password,
        )
    return Cluster(
        contact_points=settings.cassandra_hosts,
        port=settings.cassandra_port,
        auth_provider=auth_provider,
        protocol_version=settings.cassandra_protocol_version,
        load_balancing_policy=TokenAwarePolicy(
            DCAwareRoundRobinPolicy(local_dc=settings.cassandra_local_dc)
        ),
        connect_timeout=settings.cassandra_connect_timeout,
    )


class AsyncCassandraConnection:
    """Process-wide cluster and session.

    Connecting blocks; queries on the session are awaited with ``aexecute()``.
    """

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls):
        """Connect once and return the shared session.

        Raises:
            ConnectionError: If no contact point is reachable
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()
        cls._cluster = _build_cluster(settings)
        try:
            cls._session = cls._cluster.connect()
        except Exception as e:
            logger.error("cassandra_connection_failed", hosts=settings.cassandra_hosts, error=str(e))
            cls._cluster.shutdown()
            cls._cluster = None
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            local_dc=settings.cassandra_local_dc,
        )
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("cassandra_disconnected")


async def init_async_tables(session, keyspace: str) -> None:
    for module, statements in SCHEMA:
        for cql in statements:
            await session.aexecute(cql.format(keyspace=keyspace))
        logger.info("cassandra_tables_ready", module=module, tables=len(statements))


async def init_async_cassandra():
    """Connect, create the keyspace and every module's tables.

    Returns:
        Session bound to the application keyspace
    """
    settings = get_settings()
    keyspace = settings.cassandra_keyspace

    session = AsyncCassandraConnection.connect()
    await session.aexecute(keyspace_cql(settings))
    session.set_keyspace(keyspace)
    await init_async_tables(session, keyspace)

    logger.info("cassandra_initialized", keyspace=keyspace)
    return session


async def ping_cassandra(session) -> bool:
    """True when the cluster answers a trivial query."""
    try:
        await session.aexecute("SELECT release_version FROM system.local")
    except Exception as e:
        logger.warning("cassandra_ping_failed", error=str(e))
        return False
    return True


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
