"""RTP packet and header parsing and serialization."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field, replace

from .errors import (
    ExtensionIDRangeError,
    ExtensionSizeError,
    HeaderExtensionNotFoundError,
    HeaderExtensionsNotEnabledError,
    HeaderSizeInsufficientError,
    HeaderSizeInsufficientForExtensionError,
    ShortBufferError,
    TooSmallError,
)

_HEADER_LENGTH = 4
_FIXED_HEADER_LENGTH = 12
_CSRC_LENGTH = 4
_PROFILE_ONE_BYTE = 0xBEDE
_PROFILE_TWO_BYTE = 0x1000
_ID_RESERVED = 0xF

_FIXED = struct.Struct(">BBHII")


def _write_into(buf: bytearray | memoryview, data: bytes) -> int:
    if len(data) > len(buf):
        raise ShortBufferError(f"buffer of {len(buf)} bytes, need {len(data)}")
    buf[: len(data)] = data
    return len(data)


def _round_to_word(size: int) -> int:
    return ((size + 3) // 4) * 4


@dataclass
class Extension:
    """One header extension element: an ID and its payload."""

    id: int
    payload: bytes = b""


@dataclass
class Header:
    """An RTP packet header."""

    version: int = 0
    padding: bool = False
    extension: bool = False
    marker: bool = False
    payload_type: int = 0
    sequence_number: int = 0
    timestamp: int = 0
    ssrc: int = 0
    csrc: list[int] = field(default_factory=list)
    extension_profile: int = 0
    extensions: list[Extension] = field(default_factory=list)

    @classmethod
    def unmarshal(cls, buf: bytes | bytearray | memoryview) -> tuple[Header, int]:
        """Parse a header from buf; return it with the number of bytes read."""
        data = bytes(buf)
        size = len(data)
        if size < _HEADER_LENGTH:
            raise HeaderSizeInsufficientError(
                f"header size insufficient: {size} < {_HEADER_LENGTH}"
            )

        first = data[0]
        csrc_count = first & 0x0F
        n = _FIXED_HEADER_LENGTH + csrc_count * _CSRC_LENGTH
        if size < n:
            raise HeaderSizeInsufficientError(f"header size insufficient: {size} < {n}")

        _, second, sequence_number, timestamp, ssrc = _FIXED.unpack_from(data)
        header = cls(
            version=(first >> 6) & 0x3,
            padding=bool(first & 0x20),
            extension=bool(first & 0x10),
            marker=bool(second & 0x80),
            payload_type=second & 0x7F,
            sequence_number=sequence_number,
            timestamp=timestamp,
            ssrc=ssrc,
            csrc=list(struct.unpack_from(f">{csrc_count}I", data, _FIXED_HEADER_LENGTH)),
        )
        if header.extension:
            n = header._unmarshal_extensions(data, n)
        return header, n

    def _unmarshal_extensions(self, data: bytes, n: int) -> int:
        size = len(data)
        if size < n + 4:
            raise HeaderSizeInsufficientForExtensionError(
                f"header size insufficient for extension: {size} < {n + 4}"
            )
        self.extension_profile = int.from_bytes(data[n : n + 2], "big")
        length = int.from_bytes(data[n + 2 : n + 4], "big") * 4
        n += 4
        end = n + length
        if size < end:
            raise HeaderSizeInsufficientForExtensionError(
                f"header size insufficient for extension: {size} < {end}"
            )

        if self.extension_profile not in (_PROFILE_ONE_BYTE, _PROFILE_TWO_BYTE):
            self.extensions.append(Extension(0, data[n:end]))
            return end

        while n < end:
            if data[n] == 0:
                n += 1
                continue
            if self.extension_profile == _PROFILE_ONE_BYTE:
                ext_id = data[n] >> 4
                payload_len = (data[n] & 0x0F) + 1
                n += 1
                if ext_id == _ID_RESERVED:
                    break
            else:
                ext_id = data[n]
                n += 1
                if size <= n:
                    raise HeaderSizeInsufficientForExtensionError(
                        f"header size insufficient for extension: {size} < {n}"
                    )
                payload_len = data[n]
                n += 1
            if size <= n + payload_len:
                raise HeaderSizeInsufficientForExtensionError(
                    f"header size insufficient for extension: {size} < {n + payload_len}"
                )
            self.extensions.append(Extension(ext_id, data[n : n + payload_len]))
            n += payload_len
        return n

    def _raw_extension_payload(self) -> bytes:
        return self.extensions[0].payload if self.extensions else b""

    def _serialize_extensions(self) -> bytes:
        body = bytearray()
        if self.extension_profile == _PROFILE_ONE_BYTE:
            for ext in self.extensions:
                body.append(((ext.id << 4) | ((len(ext.payload) - 1) & 0xFF)) & 0xFF)
                body += ext.payload
        elif self.extension_profile == _PROFILE_TWO_BYTE:
            for ext in self.extensions:
                body += bytes((ext.id & 0xFF, len(ext.payload) & 0xFF))
                body += ext.payload
        else:
            raw = self._raw_extension_payload()
            if len(raw) % 4:
                raise ExtensionSizeError(
                    f"RFC 3550 extension payload must be 32-bit words, got {len(raw)} bytes"
                )
            body += raw
        rounded = _round_to_word(len(body))
        body += bytes(rounded - len(body))
        head = (self.extension_profile & 0xFFFF).to_bytes(2, "big")
        return head + ((rounded // 4) & 0xFFFF).to_bytes(2, "big") + bytes(body)

    def _serialize(self) -> bytes:
        first = ((self.version << 6) | len(self.csrc)) & 0xFF
        if self.padding:
            first |= 0x20
        if self.extension:
            first |= 0x10
        second = self.payload_type & 0xFF
        if self.marker:
            second |= 0x80
        out = bytearray(
            _FIXED.pack(
                first,
                second,
                self.sequence_number & 0xFFFF,
                self.timestamp & 0xFFFFFFFF,
                self.ssrc & 0xFFFFFFFF,
            )
        )
        for csrc in self.csrc:
            out += (csrc & 0xFFFFFFFF).to_bytes(4, "big")
        if self.extension:
            out += self._serialize_extensions()
        return bytes(out)

    def marshal(self) -> bytes:
        """Serialize the header."""
        return self._serialize()

    def marshal_to(self, buf: bytearray | memoryview) -> int:
        """Write the header into buf and return the number of bytes written."""
        if self.marshal_size() > len(buf):
            raise ShortBufferError(f"buffer of {len(buf)} bytes, need {self.marshal_size()}")
        return _write_into(buf, self._serialize())

    def marshal_size(self) -> int:
        """Return the size of the serialized header."""
        size = _FIXED_HEADER_LENGTH + len(self.csrc) * _CSRC_LENGTH
        if self.extension:
            ext_size = 4
            if self.extension_profile == _PROFILE_ONE_BYTE:
                ext_size += sum(1 + len(ext.payload) for ext in self.extensions)
            elif self.extension_profile == _PROFILE_TWO_BYTE:
                ext_size += sum(2 + len(ext.payload) for ext in self.extensions)
            else:
                ext_size += len(self._raw_extension_payload())
            size += _round_to_word(ext_size)
        return size

    def set_extension(self, ext_id: int, payload: bytes) -> None:
        """Add or replace the extension with this ID, enabling extensions if needed."""
        payload = bytes(payload)
        if self.extension:
            if self.extension_profile == _PROFILE_ONE_BYTE:
                if not 1 <= ext_id <= 14:
                    raise ExtensionIDRangeError(
                        f"one-byte header extension id must be 1..14, got {ext_id}"
                    )
                if len(payload) > 16:
                    raise ExtensionSizeError(
                        f"one-byte header extension payload must be <= 16 bytes, got {len(payload)}"
                    )
            elif self.extension_profile == _PROFILE_TWO_BYTE:
                if not 1 <= ext_id <= 255:
                    raise ExtensionIDRangeError(
                        f"two-byte header extension id must be 1..255, got {ext_id}"
                    )
                if len(payload) > 255:
                    raise ExtensionSizeError(
                        f"two-byte header extension payload must be <= 255 bytes, got {len(payload)}"
                    )
            elif ext_id != 0:
                raise ExtensionIDRangeError(f"RFC 3550 extension id must be 0, got {ext_id}")

            for ext in self.extensions:
                if ext.id == ext_id:
                    ext.payload = payload
                    return
            self.extensions.append(Extension(ext_id, payload))
            return

        self.extension = True
        if len(payload) <= 16:
            self.extension_profile = _PROFILE_ONE_BYTE
        elif len(payload) < 256:
            self.extension_profile = _PROFILE_TWO_BYTE
        self.extensions.append(Extension(ext_id, payload))

    def get_extension_ids(self) -> list[int]:
        """Return the IDs of the extensions, empty when extensions are disabled."""
        if not self.extension:
            return []
        return [ext.id for ext in self.extensions]

    def get_extension(self, ext_id: int) -> bytes | None:
        """Return the payload of the extension with this ID, or None."""
        if not self.extension:
            return None
        for ext in self.extensions:
            if ext.id == ext_id:
                return ext.payload
        return None

    def del_extension(self, ext_id: int) -> None:
        """Remove the extension with this ID."""
        if not self.extension:
            raise HeaderExtensionsNotEnabledError("header extensions are not enabled")
        for index, ext in enumerate(self.extensions):
            if ext.id == ext_id:
                del self.extensions[index]
                return
        raise HeaderExtensionNotFoundError(f"extension {ext_id} not found")

    def clone(self) -> Header:
        """Return a deep copy of the header."""
        return replace(
            self,
            csrc=list(self.csrc),
            extensions=[Extension(ext.id, ext.payload) for ext in self.extensions],
        )


@dataclass
class Packet:
    """An RTP packet: a header, its payload and trailing padding."""

    header: Header = field(default_factory=Header)
    payload: bytes = b""
    padding_size: int = 0

    def __str__(self) -> str:
        h = self.header
        return (
            "RTP PACKET:\n"
            f"\tVersion: {h.version}\n"
            f"\tMarker: {str(h.marker).lower()}\n"
            f"\tPayload Type: {h.payload_type}\n"
            f"\tSequence Number: {h.sequence_number}\n"
            f"\tTimestamp: {h.timestamp}\n"
            f"\tSSRC: {h.ssrc} ({h.ssrc:x})\n"
            f"\tPayload Length: {len(self.payload)}\n"
        )

    @classmethod
    def unmarshal(cls, buf: bytes | bytearray | memoryview) -> Packet:
        """Parse a whole packet from buf."""
        data = bytes(buf)
        header, n = Header.unmarshal(data)
        end = len(data)
        padding_size = 0
        if header.padding:
            padding_size = data[end - 1]
            end -= padding_size
        if end < n:
            raise TooSmallError(f"packet too small: payload ends at {end}, header at {n}")
        return cls(header=header, payload=data[n:end], padding_size=padding_size)

    def marshal(self) -> bytes:
        """Serialize the packet."""
        buf = bytearray(self.marshal_size())
        n = self.marshal_to(buf)
        return bytes(buf[:n])

    def marshal_to(self, buf: bytearray | memoryview) -> int:
        """Write the packet into buf and return the number of bytes written."""
        n = self.header.marshal_to(buf)
        total = n + len(self.payload) + self.padding_size
        if total > len(buf):
            raise ShortBufferError(f"buffer of {len(buf)} bytes, need {total}")
        m = n + len(self.payload)
        buf[n:m] = self.payload
        if self.padding_size:
            buf[m:total] = bytes(self.padding_size)
            if self.header.padding:
                buf[total - 1] = self.padding_size & 0xFF
        return total

    def marshal_size(self) -> int:
        """Return the size of the serialized packet."""
        return self.header.marshal_size() + len(self.payload) + self.padding_size

    def clone(self) -> Packet:
        """Return a deep copy of the packet."""
        return Packet(
            header=self.header.clone(),
            payload=bytes(self.payload),
            padding_size=self.padding_size,
        )