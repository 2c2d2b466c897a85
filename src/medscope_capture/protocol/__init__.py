"""
Protocol Module
===============

Byte-level protocol for the camera module.

Components:
    - Frame: Immutable header + payload pair
    - find_terminator: Pure end-of-frame scan
    - FrameAssembler: Chunk accumulator producing FrameOutcome values
    - encode_command: Logical command to wire bytes

Example:
    from medscope_capture.protocol import FrameAssembler, OutcomeKind

    assembler = FrameAssembler(max_expected_size=320 * 320 * 2)
    outcome = assembler.feed(chunk)
"""

from medscope_capture.protocol.frame import HEADER_SIZE, TERMINATOR, Frame
from medscope_capture.protocol.scanner import find_terminator
from medscope_capture.protocol.assembler import (
    FrameAssembler,
    FrameOutcome,
    OutcomeKind,
    max_frame_size,
)
from medscope_capture.protocol.commands import (
    DEFAULT_RESOLUTION_CODE,
    Capture,
    Command,
    Opcode,
    SetResolution,
    Stop,
    encode_command,
)


__all__ = [
    "HEADER_SIZE",
    "TERMINATOR",
    "Frame",
    "find_terminator",
    "FrameAssembler",
    "FrameOutcome",
    "OutcomeKind",
    "max_frame_size",
    "DEFAULT_RESOLUTION_CODE",
    "Capture",
    "Command",
    "Opcode",
    "SetResolution",
    "Stop",
    "encode_command",
]
