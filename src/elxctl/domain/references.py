"""Booking reference format and generation.

References look like ``ELX-2026-0042``: a prefix, the booking year, and a
sequence number of at least four digits that grows past 9999 naturally.

The sequence is drawn from a monotonic per-year counter owned by the
persistence layer, so two creations can never be handed the same value.
A candidate that already exists (legacy data, manual imports) is skipped
and the next counter value is tried.

INVARIANT: References are permanent. Once assigned, a reference never changes.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from elxctl.domain.errors import ReferenceCollision

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "ELX"
DEFAULT_MIN_DIGITS = 4
DEFAULT_MAX_ATTEMPTS = 100

_PREFIX_RE = re.compile(r"^[A-Z][A-Z0-9]*$")


def format_reference(
    prefix: str,
    year: int,
    sequence: int,
    *,
    min_digits: int = DEFAULT_MIN_DIGITS,
) -> str:
    """Render ``{prefix}-{year}-{sequence}`` with zero padding."""
    return f"{prefix}-{year}-{sequence:0{min_digits}d}"


def reference_pattern(prefix: str = DEFAULT_PREFIX) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(prefix)}-\d{{4}}-\d{{4,}}$")


def validate_reference(reference: str, prefix: str = DEFAULT_PREFIX) -> bool:
    """Check whether *reference* matches the booking reference format."""
    return reference_pattern(prefix).match(reference) is not None


class ReferenceGenerator:
    """Produce unique booking references from a monotonic counter.

    Parameters:
        next_sequence: Callable returning the next counter value for a
            given year. Must never return the same value twice for the
            same year.
        prefix: Upper-case reference prefix.
        min_digits: Zero-padding width of the sequence.
        max_attempts: Colliding candidates tolerated before giving up.
    """

    def __init__(
        self,
        next_sequence: Callable[[int], int],
        *,
        prefix: str = DEFAULT_PREFIX,
        min_digits: int = DEFAULT_MIN_DIGITS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if not _PREFIX_RE.match(prefix):
            msg = f"Reference prefix must be upper-case alphanumeric, got {prefix!r}"
            raise ValueError(msg)
        if max_attempts < 1:
            msg = f"max_attempts must be at least 1, got {max_attempts}"
            raise ValueError(msg)
        self._next_sequence = next_sequence
        self._prefix = prefix
        self._min_digits = min_digits
        self._max_attempts = max_attempts

    @property
    def prefix(self) -> str:
        return self._prefix

    def generate(self, year: int, exists: Callable[[str], bool]) -> str:
        """Return a reference for *year* that *exists* reports as free.

        Raises:
            ReferenceCollision: Every attempt produced a taken reference.
                Individual collisions never raise.
        """
        for _ in range(self._max_attempts):
            candidate = format_reference(
                self._prefix,
                year,
                self._next_sequence(year),
                min_digits=self._min_digits,
            )
            if not exists(candidate):
                return candidate
            logger.debug("Reference %s already taken, advancing counter", candidate)

        raise ReferenceCollision(
            f"No free reference for {self._prefix}-{year} after {self._max_attempts} attempts",
            year=year,
            attempts=self._max_attempts,
        )

    def ensure(
        self,
        current: str | None,
        year: int,
        exists: Callable[[str], bool],
    ) -> str:
        """Return *current* unchanged if set, otherwise a freshly generated reference."""
        if current:
            return current
        return self.generate(year, exists)
