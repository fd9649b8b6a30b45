"""TDS packet headers and message framing."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar

PACKET_HEADER_LEN = 8
"""Length in bytes of a TDS packet header."""

MAX_PACKET_LEN = 0xFFFF
"""Maximum encoded TDS packet length; the header stores it as a u16."""

_HEADER = struct.Struct(">BBHHBB")


def _check_byte(value: int, what: str) -> None:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{what} must fit in one byte, got {value}")


@dataclass(frozen=True)
class PacketType:
    """TDS packet type byte."""

    code: int

    SQL_BATCH: ClassVar[PacketType]
    RPC: ClassVar[PacketType]
    TABULAR_RESULT: ClassVar[PacketType]
    LOGIN7: ClassVar[PacketType]
    PRE_LOGIN: ClassVar[PacketType]

    def __post_init__(self) -> None:
        _check_byte(self.code, "packet type")


PacketType.SQL_BATCH = PacketType(0x01)
PacketType.RPC = PacketType(0x03)
PacketType.TABULAR_RESULT = PacketType(0x04)
PacketType.LOGIN7 = PacketType(0x10)
PacketType.PRE_LOGIN = PacketType(0x12)


@dataclass(frozen=True)
class PacketStatus:
    """TDS packet status byte."""

    code: int

    NORMAL: ClassVar[PacketStatus]
    END_OF_MESSAGE: ClassVar[PacketStatus]

    def __post_init__(self) -> None:
        _check_byte(self.code, "packet status")


PacketStatus.NORMAL = PacketStatus(0x00)
PacketStatus.END_OF_MESSAGE = PacketStatus(0x01)


class PacketFrameError(ValueError):
    """Raised while framing or deframing TDS packets."""


class PacketHeaderError(PacketFrameError):
    """Raised while decoding a TDS packet header."""


class WrongHeaderLengthError(PacketHeaderError):
    """The header input did not hold exactly eight bytes."""

    def __init__(self, length: int) -> None:
        super().__init__(f"TDS packet header must be 8 bytes, got {length}")
        self.length = length


class InvalidPacketLengthError(PacketHeaderError):
    """The encoded packet length is smaller than the header itself."""

    def __init__(self, length: int) -> None:
        super().__init__(
            f"TDS packet length {length} is smaller than the 8-byte header"
        )
        self.length = length


class InvalidMaxPacketSizeError(PacketFrameError):
    """The requested packet size cannot be used for framing."""

    def __init__(self, size: int) -> None:
        super().__init__(f"invalid maximum TDS packet size {size}")
        self.size = size


class MismatchedPacketTypeError(PacketFrameError):
    """Packets of one message carried different packet types."""

    def __init__(self, expected: PacketType, actual: PacketType) -> None:
        super().__init__(
            f"TDS message packet type changed from 0x{expected.code:02x} "
            f"to 0x{actual.code:02x}"
        )
        self.expected = expected
        self.actual = actual


class UnexpectedPacketIdError(PacketFrameError):
    """Packet ids in a multi-packet message were not contiguous."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"unexpected TDS packet id {actual}, expected {expected}")
        self.expected = expected
        self.actual = actual


class MessageTooLargeError(PacketFrameError):
    """The message does not fit in a protocol length field."""

    def __init__(self) -> None:
        super().__init__("TDS message is too large")


@dataclass(frozen=True)
class PacketHeader:
    """TDS packet header."""

    packet_type: PacketType
    status: PacketStatus
    length: int
    server_process_id: int = 0
    packet_id: int = 0
    window: int = 0

    def encode(self) -> bytes:
        """Encode the header to its eight wire bytes."""
        return _HEADER.pack(
            self.packet_type.code,
            self.status.code,
            self.length,
            self.server_process_id,
            self.packet_id,
            self.window,
        )

    @classmethod
    def decode(cls, data: bytes) -> PacketHeader:
        """Decode a header from exactly eight wire bytes."""
        if len(data) != PACKET_HEADER_LEN:
            raise WrongHeaderLengthError(len(data))
        packet_type, status, length, spid, packet_id, window = _HEADER.unpack(
            bytes(data)
        )
        if length < PACKET_HEADER_LEN:
            raise InvalidPacketLengthError(length)
        return cls(
            packet_type=PacketType(packet_type),
            status=PacketStatus(status),
            length=length,
            server_process_id=spid,
            packet_id=packet_id,
            window=window,
        )


@dataclass(frozen=True)
class PacketMessage:
    """A message assembled from one or more packets."""

    packet_type: PacketType
    payload: bytes
    consumed: int


def encode_message(packet_type: PacketType, payload: bytes, packet_size: int) -> bytes:
    """Split a payload into packets of at most ``packet_size`` bytes.

    Packet ids start at one; only the last packet carries END_OF_MESSAGE.
    """
    if not PACKET_HEADER_LEN < packet_size <= MAX_PACKET_LEN:
        raise InvalidMaxPacketSizeError(packet_size)

    payload = bytes(payload)
    if not payload:
        header = PacketHeader(
            packet_type, PacketStatus.END_OF_MESSAGE, PACKET_HEADER_LEN, packet_id=1
        )
        return header.encode()

    max_payload = packet_size - PACKET_HEADER_LEN
    chunks = [
        payload[start : start + max_payload]
        for start in range(0, len(payload), max_payload)
    ]
    last = len(chunks) - 1
    out = bytearray()
    for index, chunk in enumerate(chunks):
        status = PacketStatus.END_OF_MESSAGE if index == last else PacketStatus.NORMAL
        header = PacketHeader(
            packet_type,
            status,
            PACKET_HEADER_LEN + len(chunk),
            packet_id=(index + 1) & 0xFF,
        )
        out += header.encode()
        out += chunk
    return bytes(out)


def try_decode_message(data: bytes) -> PacketMessage | None:
    """Decode one complete message from the front of ``data``.

    Returns ``None`` while the buffer lacks a full packet or an
    END_OF_MESSAGE packet.
    """
    data = bytes(data)
    offset = 0
    packet_type: PacketType | None = None
    expected_id: int | None = None
    payload = bytearray()

    while True:
        body_start = offset + PACKET_HEADER_LEN
        if len(data) < body_start:
            return None

        header = PacketHeader.decode(data[offset:body_start])

        if packet_type is None:
            packet_type = header.packet_type
        elif header.packet_type != packet_type:
            raise MismatchedPacketTypeError(packet_type, header.packet_type)

        if expected_id is not None and header.packet_id != expected_id:
            raise UnexpectedPacketIdError(expected_id, header.packet_id)

        packet_end = offset + header.length
        if len(data) < packet_end:
            return None

        payload += data[body_start:packet_end]
        offset = packet_end
        expected_id = (header.packet_id + 1) & 0xFF

        if header.status == PacketStatus.END_OF_MESSAGE:
            return PacketMessage(packet_type, bytes(payload), offset)