"""Control message encoding/decoding for netspeed-testkit.

Each message is a frozen dataclass. On the wire a message is a msgpack
array of its type tag followed by its fields:

  [tag, field...]

The resulting bytes are the payload of one frame (see common.message).
"""

from dataclasses import astuple, dataclass, fields
from enum import IntEnum
from typing import ClassVar, Union

import msgpack

from common.connection import ProtocolViolationError

UINT16_MAX = 2**16 - 1
UINT64_MAX = 2**64 - 1


class EncodingError(ProtocolViolationError):
    """Raised when a control message payload cannot be decoded."""

    pass


class UnknownMessageError(EncodingError):
    """Raised when a payload does not match any known message type."""

    pass


class MalformedMessageError(EncodingError):
    """Raised when a payload has a known tag but invalid fields."""

    pass


class MsgType(IntEnum):
    """Message tags for the negotiation protocol."""

    INITIATOR_HELLO = 0x01
    RESPONDER_HELLO = 0x02
    SIZING_REQUESTED = 0x10
    BEGIN_SIZING = 0x11
    BUFFER_PLAN = 0x12
    BEGIN_MEASUREMENT = 0x20
    MEASUREMENT_COMPLETE = 0x21
    SESSION_COMPLETE = 0x22


def _is_uint(value: object, maximum: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= maximum


def _check_uint(name: str, value: object, maximum: int) -> None:
    if not _is_uint(value, maximum):
        raise ValueError(f"{name} must be an unsigned integer <= {maximum}, got {value!r}")


@dataclass(frozen=True)
class InitiatorHello:
    """Initiator's protocol version announcement."""

    msg_type: ClassVar[MsgType] = MsgType.INITIATOR_HELLO
    version: int

    def __post_init__(self) -> None:
        _check_uint("version", self.version, UINT64_MAX)


@dataclass(frozen=True)
class ResponderHello:
    """Responder's protocol version announcement, sent first."""

    msg_type: ClassVar[MsgType] = MsgType.RESPONDER_HELLO
    version: int

    def __post_init__(self) -> None:
        _check_uint("version", self.version, UINT64_MAX)


@dataclass(frozen=True)
class SizingRequested:
    """Initiator tells the responder whether a calibration transfer follows."""

    msg_type: ClassVar[MsgType] = MsgType.SIZING_REQUESTED
    required: bool

    def __post_init__(self) -> None:
        if not isinstance(self.required, bool):
            raise ValueError(f"required must be a bool, got {self.required!r}")


@dataclass(frozen=True)
class BeginSizing:
    """Bounds the calibration window; sent by the initiator and echoed back."""

    msg_type: ClassVar[MsgType] = MsgType.BEGIN_SIZING


@dataclass(frozen=True)
class BufferPlan:
    """Per-round unit size and round count, sent initiator to responder."""

    msg_type: ClassVar[MsgType] = MsgType.BUFFER_PLAN
    unit_size: int
    rounds: int

    def __post_init__(self) -> None:
        _check_uint("unit_size", self.unit_size, UINT64_MAX)
        _check_uint("rounds", self.rounds, UINT16_MAX)


@dataclass(frozen=True)
class BeginMeasurement:
    """Responder is ready to drain timed rounds."""

    msg_type: ClassVar[MsgType] = MsgType.BEGIN_MEASUREMENT


@dataclass(frozen=True)
class MeasurementComplete:
    """Initiator has written every round."""

    msg_type: ClassVar[MsgType] = MsgType.MEASUREMENT_COMPLETE


@dataclass(frozen=True)
class SessionComplete:
    """Responder's final acknowledgment."""

    msg_type: ClassVar[MsgType] = MsgType.SESSION_COMPLETE


Message = Union[
    InitiatorHello,
    ResponderHello,
    SizingRequested,
    BeginSizing,
    BufferPlan,
    BeginMeasurement,
    MeasurementComplete,
    SessionComplete,
]

_MESSAGE_CLASSES: dict[MsgType, type] = {
    cls.msg_type: cls
    for cls in (
        InitiatorHello,
        ResponderHello,
        SizingRequested,
        BeginSizing,
        BufferPlan,
        BeginMeasurement,
        MeasurementComplete,
        SessionComplete,
    )
}


def encode_message(msg: Message) -> bytes:
    """Encode a message as a msgpack [tag, field...] array."""
    return msgpack.packb([int(msg.msg_type), *astuple(msg)], use_bin_type=True)


def decode_message(payload: bytes) -> Message:
    """Decode a frame payload into a message.

    Raises:
        UnknownMessageError: Payload is not a tagged array with a known tag.
        MalformedMessageError: Tag is known but the fields are invalid.
    """
    try:
        obj = msgpack.unpackb(payload, raw=False)
    except (msgpack.exceptions.UnpackException, ValueError, TypeError) as e:
        raise UnknownMessageError(f"Undecodable payload ({len(payload)} bytes): {e}") from e

    if not isinstance(obj, list) or not obj or not _is_uint(obj[0], 0xFF):
        raise UnknownMessageError(f"Payload is not a tagged message: {obj!r}")

    try:
        msg_type = MsgType(obj[0])
    except ValueError:
        raise UnknownMessageError(f"Unknown message tag: {obj[0]:#04x}")

    cls = _MESSAGE_CLASSES[msg_type]
    values = obj[1:]
    expected = len(fields(cls))
    if len(values) != expected:
        raise MalformedMessageError(
            f"{cls.__name__}: expected {expected} fields, got {len(values)}"
        )

    try:
        return cls(*values)
    except ValueError as e:
        raise MalformedMessageError(f"{cls.__name__}: {e}") from e
