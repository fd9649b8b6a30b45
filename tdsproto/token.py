"""Parsing of the TDS token subset needed during login."""

from __future__ import annotations

import enum
import re
import struct
from dataclasses import dataclass, field
from typing import Union

from tdsproto.read import ProtocolError, Reader

_I32 = struct.Struct("<i")
_U32_BE = struct.Struct(">I")
_U32_MAX = 0xFFFFFFFF
_DECIMAL = re.compile(r"\+?[0-9]+")


class TokenParseError(ProtocolError):
    """Raised while parsing a bounded TDS token stream."""


class UnexpectedEofError(TokenParseError):
    """The token stream ended in the middle of a token."""

    def __init__(self) -> None:
        super().__init__("TDS token stream ended before the current token was complete")


class InvalidUtf16Error(TokenParseError):
    """A token contained invalid UTF-16 string data."""

    def __init__(self) -> None:
        super().__init__("TDS token contained invalid UTF-16 string data")


class UnsupportedTokenError(TokenParseError):
    """The parser does not understand the token type."""

    def __init__(self, code: int) -> None:
        super().__init__(f"unsupported TDS token 0x{code:02x}")
        self.code = code


class TrailingTokenBytesError(TokenParseError):
    """A length-prefixed token held extra bytes after its fields."""

    def __init__(self, count: int) -> None:
        super().__init__(f"TDS token contained {count} trailing bytes")
        self.count = count


class MissingLoginAckError(TokenParseError):
    """A login response did not include LOGINACK."""

    def __init__(self) -> None:
        super().__init__("TDS login response did not include LOGINACK")


class MissingDoneError(TokenParseError):
    """A login response did not include DONE."""

    def __init__(self) -> None:
        super().__init__("TDS login response did not include DONE")


class InvalidEnvChangePacketSizeError(TokenParseError):
    """An ENVCHANGE packet size was not a decimal integer."""

    def __init__(self, value: str) -> None:
        super().__init__(f"TDS ENVCHANGE packet size `{value}` is not a valid integer")
        self.value = value


class TokenType(enum.IntEnum):
    """Tabular-result token type bytes understood by this parser."""

    ERROR = 0xAA
    INFO = 0xAB
    LOGINACK = 0xAD
    ENVCHANGE = 0xE3
    DONE = 0xFD


class EnvChangeType(enum.IntEnum):
    """ENVCHANGE types that are interpreted."""

    DATABASE = 1
    LANGUAGE = 2
    CHARACTER_SET = 3
    PACKET_SIZE = 4
    UNICODE_DATA_SORTING_LOCAL_ID = 5
    UNICODE_DATA_SORTING_COMPARISON_FLAGS = 6
    SQL_COLLATION = 7
    BEGIN_TRANSACTION = 8
    COMMIT_TRANSACTION = 9
    ROLLBACK_TRANSACTION = 10


@dataclass(frozen=True)
class LoginAck:
    """LOGINACK token data."""

    interface: int
    tds_version: int
    program_name: str
    major_version: int
    minor_version: int
    build_number_high: int
    build_number_low: int


@dataclass(frozen=True)
class ServerError:
    """ERROR token data."""

    number: int
    state: int
    class_: int
    message: str
    server_name: str
    procedure_name: str
    line_number: int


@dataclass(frozen=True)
class EnvChange:
    """ENVCHANGE token data.

    For uninterpreted types ``change_type`` is a plain int and ``value``
    holds the raw bytes that followed the type byte.
    """

    change_type: int
    value: Union[str, int, bytes]

    @property
    def ignored(self) -> bool:
        return not isinstance(self.change_type, EnvChangeType)


@dataclass(frozen=True)
class TokenDone:
    """DONE token data."""

    status: int
    current_command: int
    row_count: int


@dataclass(frozen=True)
class LoginSuccess:
    """A LOGINACK was received and no ERROR token was present."""

    login_ack: LoginAck
    env_changes: list[EnvChange] = field(default_factory=list)


Token = Union[LoginAck, ServerError, EnvChange, TokenDone]


class _TokenReader(Reader):
    """Reader raising token parse errors."""

    def take(self, length: int) -> bytes:
        try:
            return super().take(length)
        except ProtocolError:
            raise UnexpectedEofError() from None

    def utf16(self, len_chars: int) -> str:
        raw = self.take(len_chars * 2)
        try:
            return raw.decode("utf-16-le")
        except UnicodeDecodeError:
            raise InvalidUtf16Error() from None

    def i32_le(self) -> int:
        return _I32.unpack(self.take(4))[0]

    def u32_be(self) -> int:
        return _U32_BE.unpack(self.take(4))[0]

    def us_varchar(self) -> str:
        return self.utf16(self.u16_le())

    def b_varbyte(self) -> bytes:
        return self.take(self.u8())

    def expect_empty(self) -> None:
        if len(self):
            raise TrailingTokenBytesError(len(self))


def parse_tokens(data: bytes) -> list[Token]:
    """Parse the supported token subset; INFO tokens are skipped."""
    reader = _TokenReader(data)
    tokens: list[Token] = []

    while len(reader):
        code = reader.u8()
        if code == TokenType.LOGINACK:
            tokens.append(_parse_login_ack(reader.len_prefixed()))
        elif code == TokenType.ERROR:
            tokens.append(parse_server_error(reader.len_prefixed()))
        elif code == TokenType.INFO:
            reader.len_prefixed()
        elif code == TokenType.ENVCHANGE:
            tokens.append(parse_env_change(reader.len_prefixed()))
        elif code == TokenType.DONE:
            tokens.append(
                TokenDone(
                    status=reader.u16_le(),
                    current_command=reader.u16_le(),
                    row_count=reader.u64_le(),
                )
            )
        else:
            raise UnsupportedTokenError(code)

    return tokens


def parse_login_response(data: bytes) -> LoginSuccess | ServerError:
    """Interpret a LOGIN7 response as success or the server's error."""
    login_ack: LoginAck | None = None
    done = False
    env_changes: list[EnvChange] = []

    for token in parse_tokens(data):
        if isinstance(token, LoginAck):
            login_ack = token
        elif isinstance(token, ServerError):
            return token
        elif isinstance(token, TokenDone):
            done = True
        else:
            env_changes.append(token)

    if login_ack is None:
        raise MissingLoginAckError()
    if not done:
        raise MissingDoneError()
    return LoginSuccess(login_ack, env_changes)


def _parse_login_ack(data: bytes) -> LoginAck:
    reader = _TokenReader(data)
    ack = LoginAck(
        interface=reader.u8(),
        tds_version=reader.u32_be(),
        program_name=reader.b_varchar(),
        major_version=reader.u8(),
        minor_version=reader.u8(),
        build_number_high=reader.u8(),
        build_number_low=reader.u8(),
    )
    reader.expect_empty()
    return ack


def parse_server_error(data: bytes) -> ServerError:
    """Parse the body of an ERROR (or INFO) token."""
    reader = _TokenReader(data)
    error = ServerError(
        number=reader.i32_le(),
        state=reader.u8(),
        class_=reader.u8(),
        message=reader.us_varchar(),
        server_name=reader.b_varchar(),
        procedure_name=reader.b_varchar(),
        line_number=reader.u32_le(),
    )
    reader.expect_empty()
    return error


def _parse_packet_size(text: str) -> int:
    if _DECIMAL.fullmatch(text) is None:
        raise InvalidEnvChangePacketSizeError(text)
    value = int(text)
    if value > _U32_MAX:
        raise InvalidEnvChangePacketSizeError(text)
    return value


def parse_env_change(data: bytes) -> EnvChange:
    """Parse the body of an ENVCHANGE token."""
    reader = _TokenReader(data)
    raw_type = reader.u8()

    try:
        change_type = EnvChangeType(raw_type)
    except ValueError:
        return EnvChange(raw_type, reader.remaining())

    value: Union[str, int, bytes]
    if change_type is EnvChangeType.PACKET_SIZE:
        value = _parse_packet_size(reader.b_varchar())
    elif change_type is EnvChangeType.SQL_COLLATION:
        value = reader.b_varbyte()
    elif change_type is EnvChangeType.BEGIN_TRANSACTION:
        value = _TokenReader(reader.b_varbyte()).u64_le()
    elif change_type in (
        EnvChangeType.COMMIT_TRANSACTION,
        EnvChangeType.ROLLBACK_TRANSACTION,
    ):
        reader.b_varbyte()
        value = reader.u64_le()
    else:
        value = reader.b_varchar()
    return EnvChange(change_type, value)