"""SQL Server Resolution Protocol: find the TCP port of a named instance."""

from __future__ import annotations

import re
import socket
import struct

from tdsproto.read import ProtocolError

SSRP_PORT = 1434
CLNT_UCAST_INST = 0x04
SVR_RESP = 0x05
SSRP_TIMEOUT = 1.0

_PORT = re.compile(r"\+?[0-9]+")
_ASCII_LOWER = str.maketrans(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz"
)


class SsrpError(ProtocolError):
    """Raised when instance resolution fails."""


def resolve_instance_port(server: str, instance: str, timeout: float = SSRP_TIMEOUT) -> int:
    """Ask the SQL Server Browser on ``server`` for the port of ``instance``."""
    request = bytes([CLNT_UCAST_INST]) + instance.encode("utf-8") + b"\x00"

    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("0.0.0.0", 0))
        sock.sendto(request, (server, SSRP_PORT))
        sock.settimeout(timeout)
        try:
            response = sock.recv(1024)
        except TimeoutError:
            raise SsrpError(
                f"SSRP request to {server} for instance {instance} timed out"
            ) from None

    return parse_ssrp_response(response, instance)


def parse_ssrp_response(data: bytes, instance: str) -> int:
    """Extract the TCP port of ``instance`` from an SVR_RESP datagram."""
    data = bytes(data)
    if len(data) < 3:
        raise SsrpError(f"SSRP response too short: {len(data)} bytes")

    if data[0] != SVR_RESP:
        raise SsrpError(
            f"invalid SSRP response type: expected 0x05, got 0x{data[0]:02x}"
        )

    (size,) = struct.unpack_from("<H", data, 1)
    end = size + 3
    if len(data) < end:
        raise SsrpError(
            f"SSRP response size mismatch: expected {end} bytes, got {len(data)}"
        )

    text = data[3:end].decode("utf-8", errors="replace")
    return find_instance_tcp_port(text, instance)


def _parse_port(value: str | None) -> int | None:
    if value is None or _PORT.fullmatch(value) is None:
        return None
    port = int(value)
    return port if port <= 0xFFFF else None


def find_instance_tcp_port(data: str, instance_name: str) -> int:
    """Find the advertised TCP port of ``instance_name`` (case-insensitive, ASCII)."""
    wanted = instance_name.translate(_ASCII_LOWER)

    for segment in data.split(";;"):
        if not segment:
            continue

        tokens = iter(segment.split(";"))
        found_name: str | None = None
        tcp_port: int | None = None
        for key in tokens:
            value = next(tokens, None)
            if key == "InstanceName":
                found_name = value
            elif key == "tcp":
                tcp_port = _parse_port(value)

        if found_name is not None and found_name.translate(_ASCII_LOWER) == wanted:
            if tcp_port is None:
                raise SsrpError(
                    f"SQL Server instance `{instance_name}` found but no TCP port "
                    "was advertised"
                )
            return tcp_port

    raise SsrpError(
        f"SQL Server instance `{instance_name}` was not found in SSRP response"
    )