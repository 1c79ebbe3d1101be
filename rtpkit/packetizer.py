"""Splitting media frames into RTP packets."""

from __future__ import annotations

import secrets
from typing import Protocol, runtime_checkable

from .packet import Header, Packet
from .sequencer import Sequencer

_RTP_HEADER_SIZE = 12
_PADDING_PAYLOAD_SIZE = 255


@runtime_checkable
class Payloader(Protocol):
    """Splits a media frame into payloads that fit in one packet each."""

    def payload(self, mtu: int, payload: bytes) -> list[bytes]:
        """Return the frame cut into payloads of at most ``mtu`` bytes."""
        ...


@runtime_checkable
class PartitionHeadChecker(Protocol):
    """Tells whether a packet payload starts a new partition (keyframe)."""

    def is_partition_head(self, payload: bytes) -> bool:
        """Return True when the payload begins a partition."""
        ...


class Packetizer:
    """Turns media frames into RTP packets for one stream."""

    def __init__(
        self,
        mtu: int,
        payload_type: int,
        ssrc: int,
        payloader: Payloader,
        sequencer: Sequencer,
        clock_rate: int,
        timestamp: int | None = None,
    ) -> None:
        self.mtu = mtu
        self.payload_type = payload_type
        self.ssrc = ssrc
        self.payloader = payloader
        self.sequencer = sequencer
        self.clock_rate = clock_rate
        self.timestamp = secrets.randbits(32) if timestamp is None else timestamp & 0xFFFFFFFF

    def _header(self, *, marker: bool, padding: bool) -> Header:
        return Header(
            version=2,
            padding=padding,
            extension=False,
            marker=marker,
            payload_type=self.payload_type,
            sequence_number=self.sequencer.next_sequence_number(),
            timestamp=self.timestamp,
            ssrc=self.ssrc,
            csrc=[],
        )

    def packetize(self, payload: bytes, samples: int) -> list[Packet]:
        """Cut a frame into packets and advance the timestamp by ``samples``."""
        if not payload:
            return []
        payloads = self.payloader.payload((self.mtu - _RTP_HEADER_SIZE) & 0xFFFF, payload)
        last = len(payloads) - 1
        packets = [
            Packet(header=self._header(marker=index == last, padding=False), payload=chunk)
            for index, chunk in enumerate(payloads)
        ]
        self.timestamp = (self.timestamp + samples) & 0xFFFFFFFF
        return packets

    def generate_padding(self, samples: int) -> list[Packet]:
        """Return ``samples`` padding-only packets at the current timestamp."""
        packets = []
        for _ in range(samples):
            filler = bytes(_PADDING_PAYLOAD_SIZE - 1) + bytes((_PADDING_PAYLOAD_SIZE,))
            packets.append(Packet(header=self._header(marker=False, padding=True), payload=filler))
        return packets

    def skip_samples(self, skipped_samples: int) -> None:
        """Leave a gap of ``skipped_samples`` in the timestamps of later packets."""
        self.timestamp = (self.timestamp + skipped_samples) & 0xFFFFFFFF