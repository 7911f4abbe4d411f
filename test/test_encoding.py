"""Unit tests for control message encoding/decoding."""

import msgpack
import pytest

from common.connection import ProtocolViolationError
from common.encoding import (
    UINT16_MAX,
    UINT64_MAX,
    BeginMeasurement,
    BeginSizing,
    BufferPlan,
    EncodingError,
    InitiatorHello,
    MalformedMessageError,
    MeasurementComplete,
    MsgType,
    ResponderHello,
    SessionComplete,
    SizingRequested,
    UnknownMessageError,
    decode_message,
    encode_message,
)


@pytest.mark.unit
class TestMsgType:
    """Tests for message tags."""

    def test_values(self) -> None:
        assert MsgType.INITIATOR_HELLO == 0x01
        assert MsgType.RESPONDER_HELLO == 0x02
        assert MsgType.SIZING_REQUESTED == 0x10
        assert MsgType.BEGIN_SIZING == 0x11
        assert MsgType.BUFFER_PLAN == 0x12
        assert MsgType.BEGIN_MEASUREMENT == 0x20
        assert MsgType.MEASUREMENT_COMPLETE == 0x21
        assert MsgType.SESSION_COMPLETE == 0x22

    def test_tags_unique(self) -> None:
        assert len({int(t) for t in MsgType}) == len(MsgType)


@pytest.mark.unit
class TestEncoding:
    """Tests for encode_message/decode_message."""

    @pytest.mark.parametrize(
        "msg",
        [
            InitiatorHello(version=0),
            InitiatorHello(version=UINT64_MAX),
            ResponderHello(version=UINT64_MAX),
            SizingRequested(required=True),
            SizingRequested(required=False),
            BeginSizing(),
            BufferPlan(unit_size=0, rounds=0),
            BufferPlan(unit_size=UINT64_MAX, rounds=UINT16_MAX),
            BeginMeasurement(),
            MeasurementComplete(),
            SessionComplete(),
        ],
    )
    def test_roundtrip(self, msg: object) -> None:
        assert decode_message(encode_message(msg)) == msg  # type: ignore[arg-type]

    def test_wire_layout(self) -> None:
        assert msgpack.unpackb(encode_message(BufferPlan(unit_size=4096, rounds=10))) == [
            0x12,
            4096,
            10,
        ]
        assert msgpack.unpackb(encode_message(SessionComplete())) == [0x22]

    def test_error_hierarchy(self) -> None:
        assert issubclass(UnknownMessageError, EncodingError)
        assert issubclass(MalformedMessageError, EncodingError)
        assert issubclass(EncodingError, ProtocolViolationError)


@pytest.mark.unit
class TestDecodeErrors:
    """Tests for rejected payloads."""

    @pytest.mark.parametrize(
        "payload",
        [
            b"",
            b"\xc1",  # Reserved msgpack byte
            msgpack.packb([0x22]) + b"\x00",  # Trailing bytes
            msgpack.packb({"tag": 1}),
            msgpack.packb([]),
            msgpack.packb(["hello"]),
            msgpack.packb([-1]),
            msgpack.packb([0x7F]),
            msgpack.packb([0x1234]),
        ],
    )
    def test_unknown(self, payload: bytes) -> None:
        with pytest.raises(UnknownMessageError):
            decode_message(payload)

    @pytest.mark.parametrize(
        "payload",
        [
            msgpack.packb([0x01]),  # Missing version
            msgpack.packb([0x01, 1, 2]),  # Extra field
            msgpack.packb([0x01, -1]),
            msgpack.packb([0x01, "1"]),
            msgpack.packb([0x10, 1]),  # required must be a bool
            msgpack.packb([0x11, 0]),
            msgpack.packb([0x12, 1024]),
            msgpack.packb([0x12, 1024, UINT16_MAX + 1]),
            msgpack.packb([0x12, True, 1]),
            msgpack.packb([0x12, 1.5, 1]),
        ],
    )
    def test_malformed(self, payload: bytes) -> None:
        with pytest.raises(MalformedMessageError):
            decode_message(payload)

    def test_unknown_tag_named(self) -> None:
        with pytest.raises(UnknownMessageError, match="0x7f"):
            decode_message(msgpack.packb([0x7F]))

    def test_malformed_names_message(self) -> None:
        with pytest.raises(MalformedMessageError, match="BufferPlan"):
            decode_message(msgpack.packb([0x12, 1024]))


@pytest.mark.unit
class TestConstruction:
    """Tests for field validation on construction."""

    def test_version_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            InitiatorHello(version=UINT64_MAX + 1)
        with pytest.raises(ValueError):
            ResponderHello(version=-1)

    def test_rounds_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            BufferPlan(unit_size=1, rounds=UINT16_MAX + 1)

    def test_required_must_be_bool(self) -> None:
        with pytest.raises(ValueError):
            SizingRequested(required=1)  # type: ignore[arg-type]

    def test_frozen(self) -> None:
        plan = BufferPlan(unit_size=1, rounds=1)
        with pytest.raises(AttributeError):
            plan.rounds = 2  # type: ignore[misc]
