"""RFC 8285 one-byte and two-byte header extension blocks, and RFC 3550 raw blocks."""

from __future__ import annotations

from collections.abc import Iterator

from .errors import (
    ExtensionIDRangeError,
    ExtensionSizeError,
    HeaderExtensionNotFoundError,
    ShortBufferError,
    TooSmallError,
)

PROFILE_ONE_BYTE = 0xBEDE
PROFILE_TWO_BYTE = 0x1000
_ID_RESERVED = 0xF


def _read_profile(buf: bytes | bytearray | memoryview) -> int:
    if len(buf) < 2:
        raise TooSmallError(f"extension block of {len(buf)} bytes has no profile")
    return int.from_bytes(bytes(buf[0:2]), "big")


def _write_into(buf: bytearray | memoryview, data: bytes) -> int:
    if len(data) > len(buf):
        raise ShortBufferError(f"buffer of {len(buf)} bytes, need {len(data)}")
    buf[: len(data)] = data
    return len(data)


class _RFC8285Block:
    """Common storage for the RFC 8285 extension blocks."""

    _profile: int

    def __init__(self, payload: bytes | None = None) -> None:
        if payload is None:
            self._payload = bytearray(self._profile.to_bytes(2, "big") + b"\x00\x00")
        else:
            self._load(payload)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({bytes(self._payload)!r})"

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._payload == other._payload

    def _entries(self) -> Iterator[tuple[int, int, int, int]]:
        """Yield (header offset, id, data offset, data length) for each element."""
        return iter(())

    def _bump_count(self) -> None:
        count = int.from_bytes(self._payload[2:4], "big")
        self._payload[2:4] = ((count + 1) & 0xFFFF).to_bytes(2, "big")

    def _find(self, ext_id: int) -> bytes | None:
        for _, eid, start, length in self._entries():
            if eid == ext_id:
                return bytes(self._payload[start : start + length])
        return None

    def _remove(self, ext_id: int) -> None:
        for head, eid, start, length in self._entries():
            if eid == ext_id:
                del self._payload[head : start + length]
                return
        raise HeaderExtensionNotFoundError(f"extension {ext_id} not found")

    def _load(self, buf: bytes | bytearray | memoryview) -> int:
        profile = _read_profile(buf)
        if profile != self._profile:
            raise HeaderExtensionNotFoundError(f"unexpected profile {profile:04x}")
        self._payload = bytearray(buf)
        return len(buf)


class OneByteHeaderExtension(_RFC8285Block):
    """An RFC 8285 one-byte header extension block."""

    _profile = PROFILE_ONE_BYTE

    def _entries(self) -> Iterator[tuple[int, int, int, int]]:
        data = self._payload
        n = 4
        while n < len(data):
            byte = data[n]
            if byte == 0:
                n += 1
                continue
            length = (byte & 0x0F) + 1
            yield n, byte >> 4, n + 1, length
            n += 1 + length

    @staticmethod
    def _element_header(ext_id: int, size: int) -> int:
        return ((ext_id << 4) | ((size - 1) & 0xFF)) & 0xFF

    def set(self, ext_id: int, payload: bytes) -> None:
        """Add or replace the element with this ID."""
        if not 1 <= ext_id <= 14:
            raise ExtensionIDRangeError(
                f"one-byte header extension id must be 1..14, got {ext_id}"
            )
        if len(payload) > 16:
            raise ExtensionSizeError(
                f"one-byte header extension payload must be <= 16 bytes, got {len(payload)}"
            )
        for head, eid, start, length in self._entries():
            if eid == ext_id:
                self._payload[head] = self._element_header(ext_id, len(payload))
                self._payload[start : start + length] = payload
                return
        self._payload.append(self._element_header(ext_id, len(payload)))
        self._payload.extend(payload)
        self._bump_count()

    def get_ids(self) -> list[int]:
        """Return the element IDs in order, stopping at the reserved ID."""
        ids = []
        for _, eid, _, _ in self._entries():
            if eid == _ID_RESERVED:
                break
            ids.append(eid)
        return ids

    def get(self, ext_id: int) -> bytes | None:
        """Return the payload of the element with this ID, or None."""
        return self._find(ext_id)

    def delete(self, ext_id: int) -> None:
        """Remove the element with this ID."""
        self._remove(ext_id)

    def unmarshal(self, buf: bytes | bytearray | memoryview) -> int:
        """Load the block from buf and return the number of bytes consumed."""
        return self._load(buf)

    def marshal(self) -> bytes:
        """Return the serialized block."""
        return bytes(self._payload)

    def marshal_to(self, buf: bytearray | memoryview) -> int:
        """Write the block into buf and return the number of bytes written."""
        return _write_into(buf, bytes(self._payload))

    def marshal_size(self) -> int:
        """Return the size of the serialized block."""
        return len(self._payload)


class TwoByteHeaderExtension(_RFC8285Block):
    """An RFC 8285 two-byte header extension block."""

    _profile = PROFILE_TWO_BYTE

    def _entries(self) -> Iterator[tuple[int, int, int, int]]:
        data = self._payload
        n = 4
        while n < len(data):
            if data[n] == 0:
                n += 1
                continue
            if n + 1 >= len(data):
                return
            length = data[n + 1]
            yield n, data[n], n + 2, length
            n += 2 + length

    def set(self, ext_id: int, payload: bytes) -> None:
        """Add or replace the element with this ID."""
        if not 1 <= ext_id <= 255:
            raise ExtensionIDRangeError(
                f"two-byte header extension id must be 1..255, got {ext_id}"
            )
        if len(payload) > 255:
            raise ExtensionSizeError(
                f"two-byte header extension payload must be <= 255 bytes, got {len(payload)}"
            )
        for head, eid, start, length in self._entries():
            if eid == ext_id:
                self._payload[head + 1] = len(payload)
                self._payload[start : start + length] = payload
                return
        self._payload.extend((ext_id, len(payload)))
        self._payload.extend(payload)
        self._bump_count()

    def get_ids(self) -> list[int]:
        """Return the element IDs in order."""
        return [eid for _, eid, _, _ in self._entries()]

    def get(self, ext_id: int) -> bytes | None:
        """Return the payload of the element with this ID, or None."""
        return self._find(ext_id)

    def delete(self, ext_id: int) -> None:
        """Remove the element with this ID."""
        self._remove(ext_id)

    def unmarshal(self, buf: bytes | bytearray | memoryview) -> int:
        """Load the block from buf and return the number of bytes consumed."""
        return self._load(buf)

    def marshal(self) -> bytes:
        """Return the serialized block."""
        return bytes(self._payload)

    def marshal_to(self, buf: bytearray | memoryview) -> int:
        """Write the block into buf and return the number of bytes written."""
        return _write_into(buf, bytes(self._payload))

    def marshal_size(self) -> int:
        """Return the size of the serialized block."""
        return len(self._payload)


class RawExtension:
    """An RFC 3550 header extension holding one opaque payload under ID 0."""

    def __init__(self, payload: bytes | None = None) -> None:
        self._payload = None if payload is None else bytes(payload)

    def __repr__(self) -> str:
        return f"RawExtension({self._payload!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RawExtension):
            return NotImplemented
        return self._payload == other._payload

    def set(self, ext_id: int, payload: bytes) -> None:
        """Replace the payload; only ID 0 exists."""
        if ext_id != 0:
            raise ExtensionIDRangeError(f"RFC 3550 extension id must be 0, got {ext_id}")
        self._payload = bytes(payload)

    def get_ids(self) -> list[int]:
        """Return the only ID a raw extension has."""
        return [0]

    def get(self, ext_id: int) -> bytes | None:
        """Return the payload for ID 0, otherwise None."""
        return self._payload if ext_id == 0 else None

    def delete(self, ext_id: int) -> None:
        """Clear the payload; only ID 0 exists."""
        if ext_id != 0:
            raise ExtensionIDRangeError(f"RFC 3550 extension id must be 0, got {ext_id}")
        self._payload = None

    def unmarshal(self, buf: bytes | bytearray | memoryview) -> int:
        """Load the block from buf and return the number of bytes consumed."""
        profile = _read_profile(buf)
        if profile in (PROFILE_ONE_BYTE, PROFILE_TWO_BYTE):
            raise HeaderExtensionNotFoundError(f"unexpected profile {profile:04x}")
        self._payload = bytes(buf)
        return len(buf)

    def marshal(self) -> bytes:
        """Return the raw payload."""
        return self._payload or b""

    def marshal_to(self, buf: bytearray | memoryview) -> int:
        """Write the payload into buf and return the number of bytes written."""
        return _write_into(buf, self.marshal())

    def marshal_size(self) -> int:
        """Return the size of the payload."""
        return len(self._payload or b"")