import pytest

from rtpkit.vla import (
    VLA,
    SpatialLayer,
    VLADuplicateSpatialIDError,
    VLAError,
    VLAInvalidSpatialIDError,
    VLAInvalidStreamCountError,
    VLAInvalidStreamIDError,
    VLAInvalidTemporalLayerError,
    VLATooShortError,
)


def test_marshal_three_streams_without_resolution():
    vla = VLA(
        rtp_stream_id=0,
        rtp_stream_count=3,
        active_spatial_layers=[
            SpatialLayer(0, 0, [150]),
            SpatialLayer(1, 0, [240, 400]),
            SpatialLayer(2, 0, [720, 1200]),
        ],
    )
    assert vla.marshal() == bytes.fromhex("21149601f0019003d005b009")


def test_marshal_three_streams_with_resolution():
    vla = VLA(
        rtp_stream_id=2,
        rtp_stream_count=3,
        active_spatial_layers=[
            SpatialLayer(0, 0, [150], 320, 180, 30),
            SpatialLayer(1, 0, [240, 400], 640, 360, 30),
            SpatialLayer(2, 0, [720, 1200], 1280, 720, 30),
        ],
        has_resolution_and_framerate=True,
    )
    expected = bytes.fromhex("a1149601f0019003d005b009013f00b31e027f01671e04ff02cf1e")
    assert vla.marshal() == expected


@pytest.mark.parametrize(
    "vla, error",
    [
        (VLA(0, -1, []), VLAInvalidStreamCountError),
        (VLA(0, 5, [SpatialLayer() for _ in range(5)]), VLAInvalidStreamCountError),
        (VLA(-1, 1, [SpatialLayer()]), VLAInvalidStreamIDError),
        (VLA(1, 1, [SpatialLayer()]), VLAInvalidStreamIDError),
        (VLA(0, 1, [SpatialLayer(rtp_stream_id=-1)]), VLAInvalidStreamIDError),
        (VLA(0, 1, [SpatialLayer(rtp_stream_id=1)]), VLAInvalidStreamIDError),
        (VLA(0, 1, [SpatialLayer(0, -1)]), VLAInvalidSpatialIDError),
        (VLA(0, 1, [SpatialLayer(0, 5)]), VLAInvalidSpatialIDError),
        (VLA(0, 1, [SpatialLayer(0, 0, [])]), VLAInvalidTemporalLayerError),
        (
            VLA(0, 1, [SpatialLayer(0, 0, [100, 200, 300, 400, 500])]),
            VLAInvalidTemporalLayerError,
        ),
        (
            VLA(0, 1, [SpatialLayer(0, 0, [100]), SpatialLayer(0, 0, [200])]),
            VLADuplicateSpatialIDError,
        ),
    ],
)
def test_marshal_rejects_invalid_allocations(vla, error):
    with pytest.raises(error):
        vla.marshal()


def test_errors_share_a_base_class():
    with pytest.raises(VLAError):
        VLA(0, 0, []).marshal()


def test_unmarshal_three_streams_without_resolution():
    data = bytes.fromhex("21149601f0019003d005b009")
    vla, n = VLA.unmarshal(data)
    assert n == len(data)
    assert vla.rtp_stream_id == 0
    assert vla.rtp_stream_count == 3
    assert vla.has_resolution_and_framerate is False
    assert [(l.rtp_stream_id, l.spatial_id, l.target_bitrates) for l in vla.active_spatial_layers] == [
        (0, 0, [150]),
        (1, 0, [240, 400]),
        (2, 0, [720, 1200]),
    ]


def test_unmarshal_three_streams_with_resolution():
    data = bytes.fromhex("a1149601f0019003d005b009013f00b31e027f01671e04ff02cf1e")
    vla, n = VLA.unmarshal(data)
    assert n == len(data)
    assert vla.rtp_stream_id == 2
    assert vla.rtp_stream_count == 3
    assert vla.has_resolution_and_framerate is True
    assert [
        (l.rtp_stream_id, l.spatial_id, l.target_bitrates, l.width, l.height, l.framerate)
        for l in vla.active_spatial_layers
    ] == [
        (0, 0, [150], 320, 180, 30),
        (1, 0, [240, 400], 640, 360, 30),
        (2, 0, [720, 1200], 1280, 720, 30),
    ]


def test_unmarshal_two_streams():
    data = bytes.fromhex("1110c801d005b009")
    vla, n = VLA.unmarshal(data)
    assert n == len(data)
    assert vla.rtp_stream_id == 0
    assert vla.rtp_stream_count == 2
    assert vla.has_resolution_and_framerate is False
    assert [(l.rtp_stream_id, l.spatial_id, l.target_bitrates) for l in vla.active_spatial_layers] == [
        (0, 0, [200]),
        (1, 0, [720, 1200]),
    ]


def test_unmarshal_three_streams_middle_paused():
    data = bytes.fromhex("601010109601d005b009013f00b31e04ff02cf1e")
    vla, n = VLA.unmarshal(data)
    assert n == len(data)
    assert vla.rtp_stream_id == 1
    assert vla.rtp_stream_count == 3
    assert vla.has_resolution_and_framerate is True
    assert [
        (l.rtp_stream_id, l.spatial_id, l.target_bitrates, l.width, l.height, l.framerate)
        for l in vla.active_spatial_layers
    ] == [
        (0, 0, [150], 320, 180, 30),
        (2, 0, [720, 1200], 1280, 720, 30),
    ]


@pytest.mark.parametrize("hex_data", ["a0001040ac02f403", "a00010409405cc08"])
def test_unmarshal_consumes_whole_payload(hex_data):
    data = bytes.fromhex(hex_data)
    _, n = VLA.unmarshal(data)
    assert n == len(data)


@pytest.mark.parametrize("data", [b"", b"\x00", b"70"])
def test_unmarshal_truncated_payload(data):
    with pytest.raises(VLATooShortError):
        VLA.unmarshal(data)


def test_round_trip_multiple_spatial_layers():
    layers = [
        SpatialLayer(stream_id, spatial_id, [150, 200], 320, 180, 30)
        for stream_id in range(3)
        for spatial_id in range(4)
    ]
    original = VLA(2, 3, layers, True)
    data = original.marshal()
    parsed, n = VLA.unmarshal(data)
    assert n == len(data)
    assert parsed == original


def test_round_trip_different_spatial_bitmasks():
    layers = [
        SpatialLayer(stream_id, spatial_id, [150, 200], 320, 180, 30)
        for stream_id in range(4)
        for spatial_id in range(stream_id + 1)
    ]
    original = VLA(0, 4, layers, True)
    data = original.marshal()
    assert data[0] & 0x0F == 0
    assert data[1] == 0x13
    assert data[2] == 0x7F
    parsed, n = VLA.unmarshal(data)
    assert n == len(data)
    assert parsed == original


def test_str_without_resolution():
    vla = VLA(0, 1, [SpatialLayer(0, 0, [100, 200])])
    assert str(vla) == "RID:0,RTPStreamCount:1,ActiveSpatialLayers:{RTPStreamID:0,TargetBitrates:[100 200]}"


def test_str_with_resolution():
    vla = VLA(1, 2, [SpatialLayer(1, 0, [300], 320, 180, 30)], True)
    assert str(vla) == (
        "RID:1,RTPStreamCount:2,ActiveSpatialLayers:"
        "{RTPStreamID:1,TargetBitrates:[300],Resolution:(320,180),Framerate:30}"
    )


def test_str_without_layers():
    assert str(VLA(0, 1, [])) == "RID:0,RTPStreamCount:1,ActiveSpatialLayers:{}"