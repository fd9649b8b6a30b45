"""DONE token parsing."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from tdsproto.read import Reader

_STATUS_MASK = 0x0117


class DoneStatus(enum.IntFlag):
    """DONE status bits."""

    FINAL = 0x0000
    MORE = 0x0001
    ERROR = 0x0002
    IN_TRANSACTION = 0x0004
    DONE_COUNT = 0x0010
    SERVER_ERROR = 0x0100


@dataclass(frozen=True)
class Done:
    """A DONE token body."""

    status: DoneStatus
    cursor_command: int
    affected_rows: int

    @classmethod
    def get(cls, reader: Reader) -> Done:
        """Read a DONE token body; unknown status bits are dropped."""
        status = DoneStatus(reader.u16_le() & _STATUS_MASK)
        cursor_command = reader.u16_le()
        affected_rows = reader.u64_le()
        return cls(status, cursor_command, affected_rows)