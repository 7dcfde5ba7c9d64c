"""Logged batch helper for multi-table writes."""

from collections.abc import Sequence
from typing import Any

from cassandra.query import BatchStatement, BatchType, PreparedStatement


# (prepared statement, bound values)
Mutation = tuple[PreparedStatement, Sequence[Any]]


def logged_batch(mutations: Sequence[Mutation]) -> BatchStatement:
    """Build a LOGGED batch: either every mutation is applied or none is."""
    batch = BatchStatement(batch_type=BatchType.LOGGED)
    for statement, values in mutations:
        batch.add(statement, values)
    return batch


async def execute_logged_batch(session: Any, mutations: Sequence[Mutation]) -> None:
    """Apply mutations atomically (no-op when empty)."""
    if not mutations:
        return
    await session.aexecute(logged_batch(mutations))
