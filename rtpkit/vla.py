"""Video Layers Allocation (VLA) RTP header extension."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .errors import RTPError

_MAX_STREAMS = 4
_MAX_SPATIAL_LAYERS = 4
_MAX_TEMPORAL_LAYERS = 4
_RESOLUTION = struct.Struct(">HHB")
_UINT64_MASK = (1 << 64) - 1


class VLAError(RTPError, ValueError):
    """Base class for errors in a Video Layers Allocation payload."""


class VLATooShortError(VLAError):
    """The VLA payload ends before all announced fields."""


class VLAInvalidStreamCountError(VLAError):
    """The RTP stream count is outside 1..4."""


class VLAInvalidStreamIDError(VLAError):
    """An RTP stream ID is outside the announced stream count."""


class VLAInvalidSpatialIDError(VLAError):
    """A spatial ID is outside 0..3."""


class VLADuplicateSpatialIDError(VLAError):
    """Two spatial layers share a stream ID and a spatial ID."""


class VLAInvalidTemporalLayerError(VLAError):
    """A spatial layer has no temporal layers or more than four."""


def _encode_leb128(value: int) -> bytes:
    value &= _UINT64_MASK
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _decode_leb128(data: bytes, offset: int) -> tuple[int, int]:
    """Return the value at ``offset`` and the number of bytes it took."""
    value = 0
    for count, byte in enumerate(data[offset:], start=1):
        value |= (byte & 0x7F) << (7 * (count - 1))
        if not byte & 0x80:
            return value, count
    raise VLATooShortError(f"failed to read LEB128 value (offset={offset})")


def _common_bitmask(bitmasks: list[int]) -> int:
    """Return the bitmask shared by all non-empty streams, or 0 if they differ."""
    common = 0
    for bitmask in bitmasks:
        if not bitmask:
            continue
        if not common:
            common = bitmask
        elif bitmask != common:
            return 0
    return common


@dataclass
class SpatialLayer:
    """One active spatial layer of an RTP stream."""

    rtp_stream_id: int = 0
    spatial_id: int = 0
    target_bitrates: list[int] = field(default_factory=list)
    width: int = 0
    height: int = 0
    framerate: int = 0


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.offset = 0

    def require(self, size: int) -> None:
        if len(self.data) - self.offset < size:
            raise VLATooShortError(f"failed to unmarshal VLA (offset={self.offset})")

    def byte(self, index: int = 0) -> int:
        return self.data[self.offset + index]


@dataclass
class VLA:
    """A Video Layers Allocation: the active layers of every simulcast stream."""

    rtp_stream_id: int = 0
    rtp_stream_count: int = 0
    active_spatial_layers: list[SpatialLayer] = field(default_factory=list)
    has_resolution_and_framerate: bool = False

    def _layer_grid(self) -> dict[tuple[int, int], SpatialLayer]:
        if not 0 < self.rtp_stream_count <= _MAX_STREAMS:
            raise VLAInvalidStreamCountError(
                f"invalid RTP stream count {self.rtp_stream_count}"
            )
        if not 0 <= self.rtp_stream_id < self.rtp_stream_count:
            raise VLAInvalidStreamIDError(f"invalid RTP stream ID {self.rtp_stream_id}")
        grid: dict[tuple[int, int], SpatialLayer] = {}
        for layer in self.active_spatial_layers:
            if not 0 <= layer.rtp_stream_id < self.rtp_stream_count:
                raise VLAInvalidStreamIDError(f"invalid RTP stream ID {layer.rtp_stream_id}")
            if not 0 <= layer.spatial_id < _MAX_SPATIAL_LAYERS:
                raise VLAInvalidSpatialIDError(f"invalid spatial ID {layer.spatial_id}")
            if not 0 < len(layer.target_bitrates) <= _MAX_TEMPORAL_LAYERS:
                raise VLAInvalidTemporalLayerError(
                    f"invalid temporal layer count {len(layer.target_bitrates)}"
                )
            key = (layer.rtp_stream_id, layer.spatial_id)
            if key in grid:
                raise VLADuplicateSpatialIDError(
                    f"duplicate spatial layer {layer.spatial_id} in stream {layer.rtp_stream_id}"
                )
            grid[key] = layer
        return grid

    def marshal(self) -> bytes:
        """Serialize the allocation."""
        grid = self._layer_grid()
        bitmasks = [0] * _MAX_STREAMS
        for stream_id, spatial_id in grid:
            bitmasks[stream_id] |= 1 << spatial_id
        common = _common_bitmask(bitmasks)

        out = bytearray(
            (((self.rtp_stream_id << 6) | ((self.rtp_stream_count - 1) << 4) | common) & 0xFF,)
        )
        trailing = 0
        if not common:
            per_stream = bytearray(2)
            for stream_id in range(self.rtp_stream_count):
                shift = 4 if stream_id % 2 == 0 else 0
                per_stream[stream_id // 2] |= bitmasks[stream_id] << shift
            used = (self.rtp_stream_count - 1) // 2 + 1
            out += per_stream[:used]
            # The field is sized for four streams even when fewer are written.
            trailing = 2 - used

        ordered = [grid[key] for key in sorted(grid)]
        temporal = bytearray(max(1, (len(ordered) + 3) // 4))
        for index, layer in enumerate(ordered):
            count = len(layer.target_bitrates) - 1
            temporal[index // 4] |= count << (2 * (3 - index % 4))
        out += temporal

        for layer in ordered:
            for kbps in layer.target_bitrates:
                out += _encode_leb128(kbps)

        if self.has_resolution_and_framerate:
            for layer in self.active_spatial_layers:
                out += _RESOLUTION.pack(
                    (layer.width - 1) & 0xFFFF,
                    (layer.height - 1) & 0xFFFF,
                    layer.framerate & 0xFF,
                )

        out += bytes(trailing)
        return bytes(out)

    @classmethod
    def unmarshal(cls, payload: bytes | bytearray | memoryview) -> tuple[VLA, int]:
        """Parse an allocation; return it with the number of bytes consumed."""
        reader = _Reader(bytes(payload))
        vla = cls()
        bitmasks = vla._read_spatial_layers(reader)
        vla._read_temporal_layers(reader, bitmasks)
        if reader.offset == len(reader.data):
            return vla, reader.offset
        vla._read_resolutions(reader)
        return vla, reader.offset

    def _read_spatial_layers(self, reader: _Reader) -> list[int]:
        reader.require(1)
        first = reader.byte()
        self.rtp_stream_id = (first >> 6) & 0b11
        self.rtp_stream_count = ((first >> 4) & 0b11) + 1
        shared = first & 0b1111
        reader.offset += 1

        if shared:
            return [shared] * self.rtp_stream_count

        used = (self.rtp_stream_count - 1) // 2 + 1
        reader.require(used)
        bitmasks = []
        for stream_id in range(self.rtp_stream_count):
            byte = reader.byte(stream_id // 2)
            bitmasks.append((byte >> 4) & 0b1111 if stream_id % 2 == 0 else byte & 0b1111)
        reader.offset += used
        return bitmasks

    def _read_temporal_layers(self, reader: _Reader, bitmasks: list[int]) -> None:
        reader.require(1)
        index = 0
        for stream_id, bitmask in enumerate(bitmasks):
            for spatial_id in range(_MAX_SPATIAL_LAYERS):
                if not bitmask & (1 << spatial_id):
                    continue
                if index >= 4:
                    index = 0
                    reader.offset += 1
                    reader.require(1)
                count = ((reader.byte() >> (2 * (3 - index))) & 0b11) + 1
                index += 1
                self.active_spatial_layers.append(
                    SpatialLayer(
                        rtp_stream_id=stream_id,
                        spatial_id=spatial_id,
                        target_bitrates=[0] * count,
                    )
                )
        reader.offset += 1

        for layer in self.active_spatial_layers:
            for position in range(len(layer.target_bitrates)):
                kbps, size = _decode_leb128(reader.data, reader.offset)
                layer.target_bitrates[position] = kbps
                reader.offset += size

    def _read_resolutions(self, reader: _Reader) -> None:
        reader.require(len(self.active_spatial_layers) * _RESOLUTION.size)
        self.has_resolution_and_framerate = True
        for layer in self.active_spatial_layers:
            width, height, framerate = _RESOLUTION.unpack_from(reader.data, reader.offset)
            layer.width = width + 1
            layer.height = height + 1
            layer.framerate = framerate
            reader.offset += _RESOLUTION.size

    def __str__(self) -> str:
        parts = []
        for layer in self.active_spatial_layers:
            bitrates = " ".join(str(kbps) for kbps in layer.target_bitrates)
            text = f"RTPStreamID:{layer.rtp_stream_id},TargetBitrates:[{bitrates}]"
            if self.has_resolution_and_framerate:
                text += f",Resolution:({layer.width},{layer.height})"
                text += f",Framerate:{layer.framerate}"
            parts.append(text)
        return (
            f"RID:{self.rtp_stream_id},RTPStreamCount:{self.rtp_stream_count}"
            f",ActiveSpatialLayers:{{{','.join(parts)}}}"
        )