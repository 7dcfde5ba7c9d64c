"""Helpers shared by the Cassandra entity classes."""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any, TypeVar


T = TypeVar("T")


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def utcnow() -> datetime:
    """Current time truncated to milliseconds (Cassandra timestamp precision)."""
    now = datetime.now(UTC)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def sort_by_order(items: Iterable[T], attr: str = "order") -> list[T]:
    """Sort entities by an integer order column, then by creation time.

    Rows come back from Cassandra in token order, so listings are ordered
    in Python. Missing values sort last.
    """

    def key(item: Any) -> tuple[int, int, datetime]:
        value = getattr(item, attr, None)
        created = getattr(item, "created_at", None) or datetime.min.replace(tzinfo=UTC)
        return (value is None, value or 0, created)

    return sorted(items, key=key)
