"""
Command Encoder
===============

Maps logical device commands to wire bytes.

Wire Format:
    SetResolution   0x01 <selector>     (2 bytes)
    Capture         0x10                (1 byte)
    Stop            (nothing on the wire; the device has no cancel opcode)

The device never acknowledges a command.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Union


DEFAULT_RESOLUTION_CODE = 0x18


class Opcode(IntEnum):
    """Single-byte command opcodes understood by the camera module."""

    SET_RESOLUTION = 0x01
    CAPTURE = 0x10


@dataclass(frozen=True)
class SetResolution:
    """Select the sensor resolution used by the next capture."""

    code: int = DEFAULT_RESOLUTION_CODE

    def __post_init__(self) -> None:
        if not 0 <= self.code <= 0xFF:
            raise ValueError(f"Resolution code must fit in one byte: {self.code}")


@dataclass(frozen=True)
class Capture:
    """Trigger a still capture."""


@dataclass(frozen=True)
class Stop:
    """Logical cancel. Encodes to nothing."""


Command = Union[SetResolution, Capture, Stop]


def encode_command(command: Command) -> bytes:
    """
    Encode a logical command for the wire.

    Args:
        command: SetResolution, Capture or Stop

    Returns:
        Bytes to write to the socket (empty for Stop)
    """
    if isinstance(command, SetResolution):
        return bytes((Opcode.SET_RESOLUTION, command.code))
    if isinstance(command, Capture):
        return bytes((Opcode.CAPTURE,))
    if isinstance(command, Stop):
        return b""
    raise TypeError(f"Unknown command: {command!r}")
