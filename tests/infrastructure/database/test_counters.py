"""Tests for per-year booking reference counters."""

from __future__ import annotations

from sqlalchemy.engine import Engine

from elxctl.infrastructure.database.counters import next_reference_sequence


class TestNextReferenceSequence:
    def test_first_value_is_one(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            assert next_reference_sequence(conn, "ELX", 2026) == 1

    def test_sequential_increment(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            values = [next_reference_sequence(conn, "ELX", 2026) for _ in range(5)]
        assert values == [1, 2, 3, 4, 5]

    def test_independent_per_year(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            a1 = next_reference_sequence(conn, "ELX", 2026)
            b1 = next_reference_sequence(conn, "ELX", 2027)
            a2 = next_reference_sequence(conn, "ELX", 2026)
        assert (a1, b1, a2) == (1, 1, 2)

    def test_independent_per_prefix(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            next_reference_sequence(conn, "ELX", 2026)
            assert next_reference_sequence(conn, "ABC", 2026) == 1

    def test_persists_across_transactions(self, db_engine: Engine) -> None:
        with db_engine.begin() as conn:
            next_reference_sequence(conn, "ELX", 2026)
        with db_engine.begin() as conn:
            assert next_reference_sequence(conn, "ELX", 2026) == 2

    def test_rolled_back_claim_is_not_kept(self, db_engine: Engine) -> None:
        conn = db_engine.connect()
        trans = conn.begin()
        next_reference_sequence(conn, "ELX", 2026)
        trans.rollback()
        conn.close()
        with db_engine.begin() as conn:
            assert next_reference_sequence(conn, "ELX", 2026) == 1
