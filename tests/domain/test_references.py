"""Tests for booking reference formatting and generation."""

from __future__ import annotations

import itertools

import pytest

from elxctl.domain.errors import ReferenceCollision
from elxctl.domain.references import (
    ReferenceGenerator,
    format_reference,
    validate_reference,
)


def _counter(start: int = 1):
    seq = itertools.count(start)
    return lambda _year: next(seq)


class TestFormat:
    def test_zero_padded(self) -> None:
        assert format_reference("ELX", 2026, 42) == "ELX-2026-0042"

    def test_grows_past_min_digits(self) -> None:
        assert format_reference("ELX", 2026, 12345) == "ELX-2026-12345"

    def test_custom_width(self) -> None:
        assert format_reference("ELX", 2026, 7, min_digits=6) == "ELX-2026-000007"

    @pytest.mark.parametrize(
        ("value", "valid"),
        [
            ("ELX-2026-0001", True),
            ("ELX-2026-123456", True),
            ("ELX-2026-001", False),
            ("ELX-26-0001", False),
            ("ABC-2026-0001", False),
            ("elx-2026-0001", False),
        ],
    )
    def test_validate(self, value: str, valid: bool) -> None:
        assert validate_reference(value) is valid

    def test_validate_custom_prefix(self) -> None:
        assert validate_reference("ABC-2026-0001", "ABC")


class TestReferenceGenerator:
    def test_sequential(self) -> None:
        gen = ReferenceGenerator(_counter())
        refs = [gen.generate(2026, lambda _r: False) for _ in range(3)]
        assert refs == ["ELX-2026-0001", "ELX-2026-0002", "ELX-2026-0003"]

    def test_skips_taken_candidates(self) -> None:
        taken = {"ELX-2026-0001", "ELX-2026-0002"}
        gen = ReferenceGenerator(_counter())
        assert gen.generate(2026, taken.__contains__) == "ELX-2026-0003"

    def test_collision_after_max_attempts(self) -> None:
        gen = ReferenceGenerator(_counter(), max_attempts=5)
        with pytest.raises(ReferenceCollision) as exc_info:
            gen.generate(2026, lambda _r: True)
        assert exc_info.value.detail == {"year": 2026, "attempts": 5}

    def test_passes_year_to_counter(self) -> None:
        seen: list[int] = []

        def next_sequence(year: int) -> int:
            seen.append(year)
            return 9

        ReferenceGenerator(next_sequence, prefix="ABC").generate(2031, lambda _r: False)
        assert seen == [2031]

    def test_ensure_keeps_existing(self) -> None:
        gen = ReferenceGenerator(_counter())
        assert gen.ensure("ELX-2025-0100", 2026, lambda _r: False) == "ELX-2025-0100"

    def test_ensure_generates_when_missing(self) -> None:
        gen = ReferenceGenerator(_counter(5))
        assert gen.ensure(None, 2026, lambda _r: False) == "ELX-2026-0005"

    @pytest.mark.parametrize("prefix", ["elx", "", "E-X", "1AB"])
    def test_bad_prefix_rejected(self, prefix: str) -> None:
        with pytest.raises(ValueError):
            ReferenceGenerator(_counter(), prefix=prefix)

    def test_zero_attempts_rejected(self) -> None:
        with pytest.raises(ValueError):
            ReferenceGenerator(_counter(), max_attempts=0)
