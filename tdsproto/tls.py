"""Stream wrapper that carries TLS handshake bytes inside PRELOGIN packets.

During the TLS handshake SQL Server expects the TLS records to travel as
the payload of TDS PRELOGIN packets. Once the handshake is finished the
records flow over the connection unwrapped.
"""

from __future__ import annotations

from types import TracebackType
from typing import Optional, Protocol

from tdsproto.packet import (
    PACKET_HEADER_LEN,
    PacketFrameError,
    PacketHeader,
    PacketType,
    encode_message,
)
from tdsproto.read import ProtocolError

_HANDSHAKE_PACKET_SIZE = 4096


class _Stream(Protocol):
    def read(self, size: int) -> bytes: ...

    def write(self, data: bytes) -> Optional[int]: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...


def wrap_prelogin_tls_payload(payload: bytes, packet_size: int) -> bytes:
    """Frame TLS handshake bytes as one or more PRELOGIN packets."""
    return encode_message(PacketType.PRE_LOGIN, payload, packet_size)


class TlsPreloginStream:
    """Byte stream that frames and unframes PRELOGIN packets while a TLS
    handshake is in progress and passes data straight through otherwise.

    The wrapped stream needs ``read``, ``write``, ``flush`` and ``close``;
    ``read`` returns ``b""`` at end of stream.
    """

    def __init__(self, stream: _Stream) -> None:
        self._stream = stream
        self._handshake = False
        self._header = bytearray()
        self._read_remaining = 0
        self._write_buf = bytearray()

    def start_handshake(self) -> None:
        """Begin wrapping traffic in PRELOGIN packets."""
        self._handshake = True

    def finish_handshake(self) -> None:
        """Stop wrapping traffic; bytes pass through unchanged."""
        self._handshake = False

    def __repr__(self) -> str:
        return (
            f"TlsPreloginStream(handshake={self._handshake}, "
            f"read_remaining={self._read_remaining}, "
            f"write_buf_len={len(self._write_buf)}, ...)"
        )

    def __enter__(self) -> TlsPreloginStream:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes of TLS data.

        During the handshake at most the rest of the current PRELOGIN
        packet's payload is returned.
        """
        if not self._handshake:
            return self._stream.read(size)

        if size <= 0:
            return b""

        if self._read_remaining == 0:
            self._read_packet_header()

        max_read = min(self._read_remaining, size)
        if max_read == 0:
            return b""

        data = self._stream.read(max_read)
        if not data:
            raise EOFError(
                "SQL Server closed the connection in the middle of a TDS "
                "PRELOGIN TLS payload"
            )

        self._read_remaining -= len(data)
        return data

    def _read_packet_header(self) -> None:
        while len(self._header) < PACKET_HEADER_LEN:
            chunk = self._stream.read(PACKET_HEADER_LEN - len(self._header))
            if not chunk:
                if not self._header:
                    raise EOFError(
                        "SQL Server closed the connection before sending a TDS "
                        "PRELOGIN packet during TLS handshake"
                    )
                raise EOFError(
                    "SQL Server closed the connection in the middle of a TDS "
                    "PRELOGIN packet header during TLS handshake"
                )
            self._header += chunk

        header = PacketHeader.decode(bytes(self._header))
        if header.packet_type != PacketType.PRE_LOGIN:
            raise ProtocolError(
                "expected TLS handshake bytes in PRELOGIN packet, got packet "
                f"type 0x{header.packet_type.code:02x}"
            )

        self._read_remaining = header.length - PACKET_HEADER_LEN
        self._header.clear()

    def write(self, data: bytes) -> int:
        """Write TLS data; during the handshake it is buffered until flush."""
        if not self._handshake:
            written = self._stream.write(data)
            return len(data) if written is None else written

        self._write_buf += data
        return len(data)

    def flush(self) -> None:
        """Send buffered handshake bytes as PRELOGIN packets and flush."""
        if self._handshake and self._write_buf:
            payload = bytes(self._write_buf)
            try:
                framed = wrap_prelogin_tls_payload(payload, _HANDSHAKE_PACKET_SIZE)
            except PacketFrameError as error:
                raise ProtocolError(
                    "failed to wrap TLS handshake bytes in a TDS PRELOGIN "
                    f"packet: {error}"
                ) from error
            self._write_buf = bytearray(framed)

            while self._write_buf:
                pending = bytes(self._write_buf)
                written = self._stream.write(pending)
                if written is None:
                    written = len(pending)
                if written == 0:
                    raise OSError("failed to write TLS handshake packet")
                del self._write_buf[:written]

        self._stream.flush()

    def close(self) -> None:
        """Close the wrapped stream."""
        self._stream.close()