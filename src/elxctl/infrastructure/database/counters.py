"""Monotonic per-year counters for booking references.

The UPDATE runs before the SELECT so SQLite takes its write lock first;
two creators racing on the same year serialize on that lock and can
never read the same value.

The caller owns the transaction — pass a ``Connection`` obtained from
``engine.begin()`` so the counter increment participates in the same
atomic transaction as the surrounding writes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import insert, select, update

from elxctl.infrastructure.database.schema import reference_counters

if TYPE_CHECKING:
    from sqlalchemy import Connection


def next_reference_sequence(conn: Connection, prefix: str, year: int) -> int:
    """Claim the next sequence value for ``(prefix, year)``.

    The first call for a year returns 1. A rolled-back transaction
    releases its value along with the insert it was claimed for.

    Args:
        conn: Active SQLAlchemy connection (caller owns the transaction).
        prefix: Reference prefix, e.g. ``"ELX"``.
        year: Booking year.

    Returns:
        The claimed sequence value.
    """
    where = (reference_counters.c.prefix == prefix) & (reference_counters.c.year == year)

    claimed = conn.execute(
        update(reference_counters)
        .where(where)
        .values(next_value=reference_counters.c.next_value + 1)
    )
    if claimed.rowcount == 0:
        conn.execute(insert(reference_counters).values(prefix=prefix, year=year, next_value=2))
        return 1

    next_value: int = conn.execute(select(reference_counters.c.next_value).where(where)).scalar_one()
    return next_value - 1
