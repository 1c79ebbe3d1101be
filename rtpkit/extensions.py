"""Payload formats of individual RTP header extensions."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import RTPError, TooSmallError

_PLAYOUT_DELAY_SIZE = 3
_PLAYOUT_DELAY_MAX = (1 << 12) - 1
_TRANSPORT_CC_SIZE = 2


class PlayoutDelayInvalidValueError(RTPError, ValueError):
    """A playout delay does not fit in 12 bits."""


@dataclass(frozen=True)
class PlayoutDelayExtension:
    """Playout delay extension: two 12-bit delays in 10 ms units."""

    min_delay: int = 0
    max_delay: int = 0

    def marshal(self) -> bytes:
        """Serialize both delays into three bytes."""
        for value in (self.min_delay, self.max_delay):
            if not 0 <= value <= _PLAYOUT_DELAY_MAX:
                raise PlayoutDelayInvalidValueError(f"invalid playout delay value {value}")
        return bytes(
            (
                (self.min_delay >> 4) & 0xFF,
                ((self.min_delay << 4) & 0xF0) | (self.max_delay >> 8),
                self.max_delay & 0xFF,
            )
        )

    @classmethod
    def unmarshal(cls, raw: bytes) -> PlayoutDelayExtension:
        """Parse the first three bytes of raw."""
        if len(raw) < _PLAYOUT_DELAY_SIZE:
            raise TooSmallError(f"playout delay needs {_PLAYOUT_DELAY_SIZE} bytes, got {len(raw)}")
        min_delay = int.from_bytes(raw[0:2], "big") >> 4
        max_delay = int.from_bytes(raw[1:3], "big") & 0x0FFF
        return cls(min_delay, max_delay)


@dataclass(frozen=True)
class TransportCCExtension:
    """Transport-wide congestion control sequence number extension."""

    transport_sequence: int = 0

    def marshal(self) -> bytes:
        """Serialize the sequence number as two big-endian bytes."""
        return (self.transport_sequence & 0xFFFF).to_bytes(_TRANSPORT_CC_SIZE, "big")

    @classmethod
    def unmarshal(cls, raw: bytes) -> TransportCCExtension:
        """Parse the first two bytes of raw."""
        if len(raw) < _TRANSPORT_CC_SIZE:
            raise TooSmallError(f"transport-cc needs {_TRANSPORT_CC_SIZE} bytes, got {len(raw)}")
        return cls(int.from_bytes(raw[0:2], "big"))