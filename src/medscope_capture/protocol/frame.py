"""
Frame Data Model
=================

One still image pulled off the camera module.

Wire layout of a frame:

    +----------------+-----------------------+-----------+
    | header (8 B)   | payload (JPEG bytes)  | FF BB     |
    +----------------+-----------------------+-----------+

Design Rules:
    - Header is opaque and passed through unexamined
    - Payload is never decoded here
    - Immutable; handed to the caller and not retained by the protocol core
"""

import time
from dataclasses import dataclass, field


HEADER_SIZE = 8
TERMINATOR = b"\xff\xbb"


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Completed image frame.

    Attributes:
        header: The 8 header bytes that preceded the payload
        payload: Encoded still image (JPEG) between header and terminator
        received_at: UNIX timestamp when the terminator was seen
    """

    header: bytes
    payload: bytes
    received_at: float = field(default_factory=time.time)

    @property
    def payload_size(self) -> int:
        return len(self.payload)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the full image."""
        return (
            f"Frame(header={self.header.hex()}, "
            f"payload_size={self.payload_size}, "
            f"received_at={self.received_at:.3f})"
        )
