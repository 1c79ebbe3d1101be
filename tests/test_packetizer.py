import pytest

from rtpkit.packet import Packet
from rtpkit.packetizer import Packetizer
from rtpkit.sequencer import fixed_sequencer, random_sequencer


class ChunkPayloader:
    """Cuts a frame into pieces of at most mtu bytes."""

    def __init__(self):
        self.mtus = []

    def payload(self, mtu, payload):
        self.mtus.append(mtu)
        return [payload[i : i + mtu] for i in range(0, len(payload), mtu)]


def make_packetizer(sequencer=None, timestamp=None, payloader=None):
    return Packetizer(
        100,
        98,
        0x1234ABCD,
        payloader or ChunkPayloader(),
        sequencer or random_sequencer(),
        90000,
        timestamp=timestamp,
    )


def test_packetize_produces_two_packets():
    packets = make_packetizer().packetize(bytes(128), 2000)
    assert len(packets) == 2


def test_payloader_gets_mtu_minus_header():
    payloader = ChunkPayloader()
    make_packetizer(payloader=payloader).packetize(bytes(128), 2000)
    assert payloader.mtus == [88]


def test_packet_fields():
    packetizer = make_packetizer(sequencer=fixed_sequencer(1234), timestamp=45678)
    packets = packetizer.packetize(bytes([0x11, 0x12, 0x13, 0x14]), 2000)
    assert len(packets) == 1
    header = packets[0].header
    assert header.version == 2
    assert header.padding is False
    assert header.extension is False
    assert header.marker is True
    assert header.payload_type == 98
    assert header.sequence_number == 1234
    assert header.timestamp == 45678
    assert header.ssrc == 0x1234ABCD
    assert header.csrc == []
    assert packets[0].payload == bytes([0x11, 0x12, 0x13, 0x14])


def test_marker_only_on_last_and_sequence_consecutive():
    packetizer = make_packetizer(sequencer=fixed_sequencer(10), timestamp=5)
    packets = packetizer.packetize(bytes(300), 1000)
    assert [p.header.marker for p in packets] == [False, False, False, True]
    assert [p.header.sequence_number for p in packets] == [10, 11, 12, 13]
    assert all(p.header.timestamp == 5 for p in packets)
    assert b"".join(p.payload for p in packets) == bytes(300)


def test_timestamp_advances_and_skips():
    packetizer = make_packetizer(timestamp=1000)
    packetizer.packetize(b"\x01", 2000)
    assert packetizer.timestamp == 3000
    packetizer.skip_samples(500)
    packets = packetizer.packetize(b"\x01", 10)
    assert packets[0].header.timestamp == 3500


def test_timestamp_wraps_at_32_bits():
    packetizer = make_packetizer(timestamp=0xFFFFFFFF)
    packetizer.packetize(b"\x01", 1)
    assert packetizer.timestamp == 0


def test_empty_payload_gives_no_packets():
    packetizer = make_packetizer(sequencer=fixed_sequencer(7), timestamp=100)
    assert packetizer.packetize(b"", 2000) == []
    assert packetizer.timestamp == 100


def test_roundtrip():
    packets = make_packetizer().packetize(bytes(128), 1000)
    for expected in packets:
        raw = expected.marshal()
        parsed = Packet.unmarshal(raw)
        assert len(raw) == parsed.marshal_size()
        assert expected.marshal_size() == parsed.marshal_size()
        assert parsed.header == expected.header
        assert parsed.payload == expected.payload
        parsed.padding_size = 0
        assert parsed == expected


def test_generate_padding():
    packetizer = make_packetizer(sequencer=fixed_sequencer(50), timestamp=777)
    packets = packetizer.generate_padding(3)
    assert len(packets) == 3
    assert [p.header.sequence_number for p in packets] == [50, 51, 52]
    for packet in packets:
        assert packet.header.padding is True
        assert packet.header.marker is False
        assert packet.header.timestamp == 777
        assert len(packet.payload) == 255
        assert packet.payload[-1] == 255
        assert packet.payload[:-1] == bytes(254)
    assert packetizer.timestamp == 777


@pytest.mark.parametrize("samples", [0])
def test_generate_padding_zero(samples):
    assert make_packetizer().generate_padding(samples) == []