"""Cassandra connection shared by the maintenance scripts."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from cassandra.auth import PlainTextAuthProvider
from cassandra_asyncio.cluster import Cluster

from securelearn.config import Settings


@contextmanager
def cassandra_session(settings: Settings) -> Iterator[Any]:
    """Connect to the configured cluster and keyspace; shut down on exit."""
    auth_provider = None
    if settings.cassandra_username and settings.cassandra_password:
        auth_provider = PlainTextAuthProvider(
            username=settings.cassandra_username,
            password=settings.cassandra_password,
        )

    cluster = Cluster(
        contact_points=settings.cassandra_hosts,
        port=settings.cassandra_port,
        auth_provider=auth_provider,
        protocol_version=settings.cassandra_protocol_version,
    )
    session = cluster.connect()
    session.set_keyspace(settings.cassandra_keyspace)
    try:
        yield session
    finally:
        session.shutdown()
        cluster.shutdown()
