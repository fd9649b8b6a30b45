import struct

import pytest

from tdsproto.token import (
    EnvChange,
    EnvChangeType,
    InvalidEnvChangePacketSizeError,
    InvalidUtf16Error,
    LoginAck,
    LoginSuccess,
    MissingDoneError,
    MissingLoginAckError,
    ServerError,
    TokenDone,
    TokenParseError,
    TokenType,
    TrailingTokenBytesError,
    UnexpectedEofError,
    UnsupportedTokenError,
    parse_env_change,
    parse_login_response,
    parse_server_error,
    parse_tokens,
)


def utf16(value: str) -> bytes:
    return value.encode("utf-16-le")


def b_varchar(value: str) -> bytes:
    encoded = utf16(value)
    return bytes([len(encoded) // 2]) + encoded


def us_varchar(value: str) -> bytes:
    encoded = utf16(value)
    return struct.pack("<H", len(encoded) // 2) + encoded


def len_prefixed(token_type: int, body: bytes) -> bytes:
    return bytes([token_type]) + struct.pack("<H", len(body)) + body


def login_ack(program_name: str) -> bytes:
    body = bytes([1]) + struct.pack(">I", 0x74000004) + b_varchar(program_name)
    body += bytes([16, 0, 0x10, 0x4A])
    return len_prefixed(TokenType.LOGINACK, body)


def error_body(number, state, class_, message, server_name, procedure_name, line):
    return (
        struct.pack("<i", number)
        + bytes([state, class_])
        + us_varchar(message)
        + b_varchar(server_name)
        + b_varchar(procedure_name)
        + struct.pack("<I", line)
    )


def error(*args) -> bytes:
    return len_prefixed(TokenType.ERROR, error_body(*args))


def env_change(change_type: int, data: bytes) -> bytes:
    return len_prefixed(TokenType.ENVCHANGE, bytes([change_type]) + data)


def done(status: int, current_command: int, row_count: int) -> bytes:
    return bytes([TokenType.DONE]) + struct.pack("<HHQ", status, current_command, row_count)


EXPECTED_ACK = LoginAck(
    interface=1,
    tds_version=0x74000004,
    program_name="Microsoft SQL Server",
    major_version=16,
    minor_version=0,
    build_number_high=0x10,
    build_number_low=0x4A,
)


def test_parses_login_ack_envchange_and_done_as_success():
    data = (
        login_ack("Microsoft SQL Server")
        + env_change(
            4, bytes([4, ord("4"), 0, ord("0"), 0, ord("9"), 0, ord("6"), 0,
                      3, ord("5"), 0, ord("1"), 0, ord("2"), 0])
        )
        + done(0, 0, 0)
    )

    tokens = parse_tokens(data)
    assert len(tokens) == 3
    assert tokens[2] == TokenDone(0, 0, 0)

    assert parse_login_response(data) == LoginSuccess(
        login_ack=EXPECTED_ACK,
        env_changes=[EnvChange(EnvChangeType.PACKET_SIZE, 4096)],
    )


def test_parses_transaction_envchanges():
    assert parse_env_change(bytes([8, 8, 8, 7, 6, 5, 4, 3, 2, 1])) == EnvChange(
        EnvChangeType.BEGIN_TRANSACTION, 0x0102030405060708
    )
    assert parse_env_change(
        bytes([9, 0, 0x18, 0x17, 0x16, 0x15, 0x14, 0x13, 0x12, 0x11])
    ) == EnvChange(EnvChangeType.COMMIT_TRANSACTION, 0x1112131415161718)
    assert parse_env_change(
        bytes([10, 0, 0x28, 0x27, 0x26, 0x25, 0x24, 0x23, 0x22, 0x21])
    ) == EnvChange(EnvChangeType.ROLLBACK_TRANSACTION, 0x2122232425262728)


def test_reports_server_error_before_done():
    data = error(18456, 1, 14, "Login failed", "dbhost", "", 1) + done(0x0002, 0, 0)

    assert parse_login_response(data) == ServerError(
        number=18456,
        state=1,
        class_=14,
        message="Login failed",
        server_name="dbhost",
        procedure_name="",
        line_number=1,
    )


def test_skips_info_tokens_during_login():
    data = (
        len_prefixed(TokenType.INFO, error_body(5701, 1, 10, "Changed database", "", "", 1))
        + login_ack("Microsoft SQL Server")
        + done(0, 0, 0)
    )

    result = parse_login_response(data)
    assert isinstance(result, LoginSuccess)
    assert result.login_ack == EXPECTED_ACK
    assert result.env_changes == []


def test_rejects_truncated_login_ack():
    with pytest.raises(UnexpectedEofError):
        parse_tokens(bytes([TokenType.LOGINACK, 10, 0, 1, 0x74]))


def test_rejects_unsupported_tokens_in_bounded_parser():
    with pytest.raises(UnsupportedTokenError) as info:
        parse_tokens(bytes([0xAC, 0, 0]))
    assert info.value.code == 0xAC
    assert "0xac" in str(info.value)


def test_login_response_requires_login_ack_when_no_error_is_present():
    with pytest.raises(MissingLoginAckError):
        parse_login_response(done(0, 0, 0))


def test_login_response_success_requires_done():
    with pytest.raises(MissingDoneError):
        parse_login_response(login_ack("Microsoft SQL Server"))


def test_empty_stream_yields_no_tokens():
    assert parse_tokens(b"") == []


def test_trailing_bytes_in_login_ack_are_rejected():
    body = bytes([1]) + struct.pack(">I", 0x74000004) + b_varchar("x") + bytes([1, 2, 3, 4, 9])
    with pytest.raises(TrailingTokenBytesError) as info:
        parse_tokens(len_prefixed(TokenType.LOGINACK, body))
    assert info.value.count == 1


def test_parse_server_error_reads_fields():
    parsed = parse_server_error(error_body(208, 1, 16, "Invalid object", "srv", "proc", 3))
    assert parsed.number == 208
    assert parsed.class_ == 16
    assert parsed.message == "Invalid object"
    assert parsed.procedure_name == "proc"
    assert parsed.line_number == 3


def test_invalid_packet_size_is_rejected():
    with pytest.raises(InvalidEnvChangePacketSizeError) as info:
        parse_env_change(bytes([4]) + b_varchar("abc") + b_varchar(""))
    assert info.value.value == "abc"


def test_string_envchanges():
    change = parse_env_change(bytes([1]) + b_varchar("appdb") + b_varchar("master"))
    assert change == EnvChange(EnvChangeType.DATABASE, "appdb")
    assert not change.ignored


def test_collation_envchange_keeps_raw_bytes():
    change = parse_env_change(bytes([7, 5, 9, 4, 0xD0, 0, 52, 0]))
    assert change == EnvChange(EnvChangeType.SQL_COLLATION, bytes([9, 4, 0xD0, 0, 52]))


def test_unknown_envchange_is_ignored_with_raw_data():
    change = parse_env_change(bytes([13, 1, 2, 3]))
    assert change.ignored
    assert change.change_type == 13
    assert change.value == bytes([1, 2, 3])


def test_invalid_utf16_is_rejected():
    with pytest.raises(InvalidUtf16Error):
        parse_env_change(bytes([1, 1, 0x00, 0xD8]))


def test_errors_share_base_class():
    with pytest.raises(TokenParseError):
        parse_tokens(bytes([TokenType.DONE, 0, 0]))