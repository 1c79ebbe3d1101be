# rtpkit

A pure-Python toolkit for working with RTP (Real-time Transport Protocol)
packets. It lets you:

- parse and serialize RTP packets and headers, including CSRC lists and padding
- read and write header extensions in RFC 3550 raw form and in RFC 8285
  one-byte and two-byte form
- encode and decode the playout-delay, transport-wide congestion control and
  video layers allocation (VLA) extension payloads
- split media frames into a sequence of RTP packets with a packetizer and a
  sequence-number generator

It has no runtime dependencies.

## Installation

```
pip install rtpkit
```

## Parsing and building packets

```python
from rtpkit.packet import Packet

raw = bytes([
    0x90, 0xE0, 0x69, 0x8F, 0xD9, 0xC2, 0x93, 0xDA, 0x1C, 0x64,
    0x27, 0x82, 0xBE, 0xDE, 0x00, 0x01, 0x50, 0xAA, 0x00, 0x00,
    0x98, 0x36, 0xBE, 0x88, 0x9E,
])

packet = Packet.unmarshal(raw)
print(packet)                              # readable summary of the packet
print(packet.header.get_extension(5))      # b'\xaa'

packet.header.set_extension(1, b"\x01\x02")
data = packet.marshal()
```

`Packet` has `header`, `payload` and `padding_size` fields. `Header.unmarshal`
returns a tuple of the parsed header and the number of bytes read. Both classes
offer `marshal()`, `marshal_to(buf)` (writes into a `bytearray` and returns the
number of bytes written), `marshal_size()` and `clone()` for a deep copy.

On a header, `set_extension`, `get_extension`, `get_extension_ids` and
`del_extension` manage the extension elements. The first call to
`set_extension` on a header without extensions turns them on and picks the
one-byte profile for payloads of up to 16 bytes, the two-byte profile for
larger ones.

Errors raise exceptions from `rtpkit.errors`, all derived from `RTPError`:
`HeaderSizeInsufficientError`, `HeaderSizeInsufficientForExtensionError`,
`TooSmallError`, `ShortBufferError`, `HeaderExtensionNotFoundError`,
`HeaderExtensionsNotEnabledError`, `ExtensionIDRangeError` and
`ExtensionSizeError`.

## Header extension blocks on their own

```python
from rtpkit.header_extension import OneByteHeaderExtension

ext = OneByteHeaderExtension()
ext.unmarshal(bytes([0xBE, 0xDE, 0x00, 0x00]))
ext.set(1, b"\xbb")
assert ext.get(1) == b"\xbb"
ext.delete(1)
```

`TwoByteHeaderExtension` and `RawExtension` offer the same methods (`set`,
`get`, `get_ids`, `delete`, `unmarshal`, `marshal`, `marshal_to`,
`marshal_size`).

## Extension payloads

```python
from rtpkit.extensions import PlayoutDelayExtension, TransportCCExtension
from rtpkit.vla import VLA

PlayoutDelayExtension(min_delay=16, max_delay=256).marshal()   # b'\x01\x01\x00'
TransportCCExtension.unmarshal(b"\x00\x02").transport_sequence  # 2

vla, consumed = VLA.unmarshal(bytes.fromhex("21149601f0019003d005b009"))
print(vla)
```

`VLA` holds a list of `SpatialLayer` entries. Invalid allocations raise a
subclass of `rtpkit.vla.VLAError`; delays that do not fit in 12 bits raise
`PlayoutDelayInvalidValueError`.

## Packetizing

Provide a `Payloader` that splits a media frame into chunks of at most `mtu`
bytes; the packetizer wraps each chunk in an RTP packet, marks the last one and
advances the timestamp:

```python
from rtpkit.packetizer import Packetizer, Payloader
from rtpkit.sequencer import fixed_sequencer

class ChunkPayloader(Payloader):
    def payload(self, mtu, payload):
        return [payload[i:i + mtu] for i in range(0, len(payload), mtu)]

packetizer = Packetizer(100, 98, 0x1234ABCD, ChunkPayloader(), fixed_sequencer(1000), 90000)
packets = packetizer.packetize(bytes(128), 2000)
```

`generate_padding(samples)` returns padding-only packets and
`skip_samples(n)` leaves a gap in later timestamps. `random_sequencer()` starts
at a random sequence number; `Sequencer.roll_over_count()` reports how often
the number wrapped.

Static payload type numbers are available in `rtpkit.payload_types.PayloadType`.

## What it does not do

rtpkit ships no payloaders for particular codecs and no depacketizers; you
supply the `Payloader`. It does no network I/O: sending and receiving packets
is up to your application.

## Running the tests

```
pip install "rtpkit[test]"
pytest
```