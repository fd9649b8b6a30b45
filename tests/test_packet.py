import pytest

from tdsproto.packet import (
    PACKET_HEADER_LEN,
    InvalidMaxPacketSizeError,
    InvalidPacketLengthError,
    MismatchedPacketTypeError,
    PacketFrameError,
    PacketHeader,
    PacketStatus,
    PacketType,
    UnexpectedPacketIdError,
    WrongHeaderLengthError,
    encode_message,
    try_decode_message,
)

SQL_BATCH_BYTE = 0x01


def contiguous_packet_id_message() -> bytearray:
    return bytearray(
        [
            0x12, 0x00, 0x00, 0x0C, 0, 0, 1, 0, *b"abcd",
            0x12, 0x00, 0x00, 0x0C, 0, 0, 2, 0, *b"efgh",
            0x12, 0x01, 0x00, 0x09, 0, 0, 3, 0, *b"i",
        ]
    )


def test_encodes_header_with_big_endian_integer_fields():
    header = PacketHeader(
        packet_type=PacketType.PRE_LOGIN,
        status=PacketStatus.END_OF_MESSAGE,
        length=0x1234,
        server_process_id=0xABCD,
        packet_id=7,
        window=0,
    )
    assert header.encode() == bytes([0x12, 0x01, 0x12, 0x34, 0xAB, 0xCD, 0x07, 0x00])


def test_decodes_header_from_wire_bytes():
    header = PacketHeader.decode(bytes([0x04, 0x01, 0x00, 0x08, 0x00, 0x2A, 0x03, 0x00]))
    assert header.packet_type == PacketType.TABULAR_RESULT
    assert header.status == PacketStatus.END_OF_MESSAGE
    assert header.length == 8
    assert header.server_process_id == 42
    assert header.packet_id == 3


def test_rejects_header_with_impossible_length():
    with pytest.raises(InvalidPacketLengthError) as info:
        PacketHeader.decode(bytes([0x12, 0x01, 0x00, 0x07, 0, 0, 0, 0]))
    assert info.value.length == 7


def test_rejects_header_of_wrong_length():
    with pytest.raises(WrongHeaderLengthError) as info:
        PacketHeader.decode(bytes([0x12, 0x01, 0x00]))
    assert info.value.length == 3


def test_header_round_trip():
    header = PacketHeader(PacketType.RPC, PacketStatus.NORMAL, 512, packet_id=9)
    assert PacketHeader.decode(header.encode()) == header


def test_encodes_empty_message_as_end_packet():
    assert encode_message(PacketType.SQL_BATCH, b"", 512) == bytes(
        [0x01, 0x01, 0x00, 0x08, 0, 0, 1, 0]
    )


def test_encodes_client_message_across_packet_boundaries_from_packet_id_one():
    assert encode_message(PacketType.PRE_LOGIN, b"abcdefghi", 12) == bytes(
        contiguous_packet_id_message()
    )


@pytest.mark.parametrize("size", [PACKET_HEADER_LEN, 0x10000])
def test_rejects_invalid_max_packet_size(size):
    with pytest.raises(InvalidMaxPacketSizeError) as info:
        encode_message(PacketType.PRE_LOGIN, b"abc", size)
    assert info.value.size == size


def test_decodes_single_packet_message_and_reports_consumed_bytes():
    data = encode_message(PacketType.SQL_BATCH, b"select 1", 512) + b"next message bytes"
    message = try_decode_message(data)
    assert message.packet_type == PacketType.SQL_BATCH
    assert message.payload == b"select 1"
    assert message.consumed == PACKET_HEADER_LEN + len(b"select 1")


def test_decodes_multi_packet_message_payload():
    data = contiguous_packet_id_message()
    message = try_decode_message(data)
    assert message.packet_type == PacketType.PRE_LOGIN
    assert message.payload == b"abcdefghi"
    assert message.consumed == len(data)


def test_waits_for_complete_packet():
    assert try_decode_message(contiguous_packet_id_message()[:15]) is None


def test_waits_for_end_of_message_packet():
    assert try_decode_message(contiguous_packet_id_message()[:12]) is None


def test_rejects_mismatched_packet_types():
    data = contiguous_packet_id_message()
    data[12] = SQL_BATCH_BYTE
    with pytest.raises(MismatchedPacketTypeError) as info:
        try_decode_message(data)
    assert info.value.expected == PacketType.PRE_LOGIN
    assert info.value.actual == PacketType.SQL_BATCH


def test_rejects_non_contiguous_packet_ids():
    data = contiguous_packet_id_message()
    data[18] = 5
    with pytest.raises(UnexpectedPacketIdError) as info:
        try_decode_message(data)
    assert (info.value.expected, info.value.actual) == (2, 5)


def test_header_errors_are_frame_errors_while_decoding_messages():
    with pytest.raises(PacketFrameError):
        try_decode_message(bytes([0x12, 0x01, 0x00, 0x07, 0, 0, 0, 0]))


@pytest.mark.parametrize("size", [9, 13, 100, 4096])
def test_encode_then_decode_round_trip(size):
    payload = bytes(range(256)) * 3
    message = try_decode_message(encode_message(PacketType.RPC, payload, size))
    assert message.payload == payload
    assert message.packet_type == PacketType.RPC