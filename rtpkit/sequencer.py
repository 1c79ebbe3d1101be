"""Generators of consecutive 16-bit RTP sequence numbers."""

from __future__ import annotations

import secrets
import threading

_SEQUENCE_MODULUS = 1 << 16


class Sequencer:
    """Hands out consecutive sequence numbers and counts wrap-arounds.

    The first number returned is one past the stored ``current`` value.
    Safe to use from several threads.
    """

    def __init__(self, current: int = 0) -> None:
        self._sequence_number = current % _SEQUENCE_MODULUS
        self._roll_over_count = 0
        self._lock = threading.Lock()

    def next_sequence_number(self) -> int:
        """Advance and return the next sequence number."""
        with self._lock:
            self._sequence_number = (self._sequence_number + 1) % _SEQUENCE_MODULUS
            if self._sequence_number == 0:
                self._roll_over_count += 1
            return self._sequence_number

    def roll_over_count(self) -> int:
        """Return how many times the sequence number has wrapped to zero."""
        with self._lock:
            return self._roll_over_count


def random_sequencer() -> Sequencer:
    """Return a sequencer starting from a random sequence number."""
    return Sequencer(secrets.randbelow(_SEQUENCE_MODULUS - 1))


def fixed_sequencer(start: int) -> Sequencer:
    """Return a sequencer whose first sequence number is ``start``."""
    return Sequencer((start - 1) % _SEQUENCE_MODULUS)