# tdsproto

Building blocks for the Microsoft SQL Server TDS wire protocol, written in
plain Python with no third-party dependencies.

## Modules

- `tdsproto.packet`: `PacketHeader` with `encode()` and `decode()`,
  `encode_message()` to split a payload into packets of a given maximum size
  (packet ids start at one, only the last packet carries `END_OF_MESSAGE`),
  and `try_decode_message()` to reassemble one message from the front of a
  receive buffer. Framing problems raise subclasses of `PacketFrameError`.
- `tdsproto.read`: `Reader`, a cursor over bytes for `u8`, `u16_le`,
  `u32_le`, `u64_le`, length-prefixed bytes and UTF-16 strings. Truncated or
  malformed input raises `ProtocolError`.
- `tdsproto.token`: `parse_tokens()` for the login-time token subset
  (LOGINACK, ERROR, ENVCHANGE, DONE; INFO tokens are skipped),
  `parse_login_response()` which returns a `LoginSuccess` or the server's
  `ServerError`, plus `parse_server_error()` and `parse_env_change()`.
  Errors are subclasses of `TokenParseError`.
- `tdsproto.tds_types`: `DataType`, `Collation`, `CollationFlags` and
  `TypeInfo`, which reads and writes TYPE_INFO (`get()`, `put()`) and gives
  the type's `name()` and parameter `declaration()` such as `nvarchar(6)`.
- `tdsproto.values`: `read_value()` and `write_value()` for the raw bytes of
  one value with the length framing of its type, and `read_plp()` for
  partially length-prefixed (`max`) values. `None` stands for SQL NULL.
- `tdsproto.type_info`: `MssqlType` and `MssqlTypeInfo`, the type families
  seen by users, with `from_protocol()` to map a wire `TypeInfo` and
  `type_compatible()`.
- `tdsproto.col_meta_data`: `parse_col_meta_data()` turns a COLMETADATA
  token body into a list of `MetadataColumn`.
- `tdsproto.return_value`: `ReturnValue.get()` reads a RETURNVALUE token body.
- `tdsproto.done`: `Done.get()` reads a DONE token body with `DoneStatus` bits.
- `tdsproto.query_result`: `QueryResult`, whose `extend()` adds up the
  `rows_affected` of further results.
- `tdsproto.ssrp`: `resolve_instance_port(server, instance, timeout=1.0)`
  asks the SQL Server Browser over UDP port 1434 for the TCP port of a named
  instance; `parse_ssrp_response()` and `find_instance_tcp_port()` do the
  parsing. Failures raise `SsrpError`.
- `tdsproto.tls`: `TlsPreloginStream` wraps a blocking stream so that, between
  `start_handshake()` and `finish_handshake()`, written bytes are sent as
  PRELOGIN packets on `flush()` and read bytes are taken from PRELOGIN packets.
  `wrap_prelogin_tls_payload()` does the framing.

## Installation

```
pip install .
```

## Example

```python
from tdsproto.packet import PacketType, encode_message, try_decode_message

wire = encode_message(PacketType.SQL_BATCH, "SELECT 1".encode("utf-16-le"), 4096)
message = try_decode_message(wire)
assert message.payload == "SELECT 1".encode("utf-16-le")
assert message.consumed == len(wire)
```

`try_decode_message` returns `None` while the buffer does not yet hold a
complete message.

```python
from tdsproto.read import Reader
from tdsproto.tds_types import TypeInfo
from tdsproto.values import read_value

reader = Reader(bytes([0x26, 4, 4, 1, 0, 0, 0]))
info = TypeInfo.get(reader)
assert info.name() == "INT"
assert read_value(info, reader) == b"\x01\x00\x00\x00"
```

## What it does not do

This package is a set of protocol pieces, not a database client. It does not
open TDS connections, build PRELOGIN or LOGIN7 requests, send SQL batches or
RPC calls, decode row tokens into Python values, or manage transactions.
There is no command-line tool.

## Running the tests

```
pip install .[test]
pytest
```