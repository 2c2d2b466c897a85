"""
Frame Assembler
===============

Stateful byte accumulator that turns arriving chunks into one Frame.

Each call to ``feed`` appends a chunk and rescans the whole buffer for the
terminator. The result is one of three outcomes:

    INCOMPLETE  - no terminator yet, buffer still under the size bound
    COMPLETE    - terminator found after a full header, Frame produced
    CORRUPT     - size bound exceeded without a terminator, or the
                  terminator arrived before any payload

Design Rules:
    - No I/O; buffer mutation only
    - The size bound is the only corruption signal (no checksum, no length prefix)
    - Buffer is emptied on every COMPLETE or CORRUPT outcome
    - Bytes trailing a terminator are discarded (no pipelining)
    - A terminator that appears inside the JPEG data ends the frame early;
      the pattern carries no escaping
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from medscope_capture.protocol.frame import HEADER_SIZE, TERMINATOR, Frame
from medscope_capture.protocol.scanner import find_terminator


logger = logging.getLogger(__name__)


class OutcomeKind(str, Enum):
    """Result category of a single ``feed`` call."""

    INCOMPLETE = "INCOMPLETE"
    COMPLETE = "COMPLETE"
    CORRUPT = "CORRUPT"


@dataclass(frozen=True)
class FrameOutcome:
    """
    Outcome of feeding one chunk into the assembler.

    Attributes:
        kind: INCOMPLETE, COMPLETE or CORRUPT
        frame: The completed frame (COMPLETE only)
        reason: Why the buffer was rejected (CORRUPT only)
    """

    kind: OutcomeKind
    frame: Optional[Frame] = None
    reason: Optional[str] = None

    @classmethod
    def incomplete(cls) -> "FrameOutcome":
        """No terminator yet; keep buffering."""
        return cls(kind=OutcomeKind.INCOMPLETE)

    @classmethod
    def complete(cls, frame: Frame) -> "FrameOutcome":
        """A frame was split off at the terminator."""
        return cls(kind=OutcomeKind.COMPLETE, frame=frame)

    @classmethod
    def corrupt(cls, reason: str) -> "FrameOutcome":
        """The buffer was discarded; reason says why."""
        return cls(kind=OutcomeKind.CORRUPT, reason=reason)

    @property
    def is_incomplete(self) -> bool:
        return self.kind is OutcomeKind.INCOMPLETE


def max_frame_size(image_width: int, image_height: int) -> int:
    """Upper bound on buffered bytes for one frame (2 bytes per pixel)."""
    return image_width * image_height * 2


class FrameAssembler:
    """
    Accumulates inbound chunks until a complete frame is seen.

    Not thread-safe. Callers must feed chunks for one session from a
    single reader, in arrival order.

    Example:
        assembler = FrameAssembler(max_expected_size=320 * 320 * 2)

        for chunk in chunks:
            outcome = assembler.feed(chunk)
            if outcome.kind is OutcomeKind.COMPLETE:
                handle(outcome.frame)
    """

    def __init__(
        self,
        max_expected_size: int,
        terminator: bytes = TERMINATOR,
        header_size: int = HEADER_SIZE,
    ) -> None:
        if max_expected_size <= header_size:
            raise ValueError("max_expected_size must exceed the header size")

        self.max_expected_size = max_expected_size
        self.terminator = terminator
        self.header_size = header_size

        self._buffer = bytearray()

    @property
    def buffered(self) -> int:
        """Number of bytes currently held."""
        return len(self._buffer)

    def reset(self) -> int:
        """
        Discard any partially assembled frame.

        Returns:
            Number of bytes discarded.
        """
        discarded = len(self._buffer)
        self._buffer = bytearray()
        return discarded

    def feed(self, chunk: bytes) -> FrameOutcome:
        """
        Append a chunk and check for a frame boundary.

        Args:
            chunk: Bytes as delivered by the transport

        Returns:
            FrameOutcome describing the buffer state after this chunk
        """
        self._buffer.extend(chunk)

        index = find_terminator(self._buffer, self.terminator)

        if index is None:
            if len(self._buffer) >= self.max_expected_size:
                size = self.reset()
                logger.warning(
                    f"Discarded {size} bytes: no terminator within "
                    f"{self.max_expected_size} byte bound"
                )
                return FrameOutcome.corrupt("no terminator within size bound")
            return FrameOutcome.incomplete()

        if index < self.header_size:
            self.reset()
            logger.warning(f"Terminator at offset {index}, before end of header")
            return FrameOutcome.corrupt("frame shorter than header")

        if index == self.header_size:
            self.reset()
            logger.warning("Terminator directly after header, frame has no payload")
            return FrameOutcome.corrupt("empty payload")

        header = bytes(self._buffer[:self.header_size])
        payload = bytes(self._buffer[self.header_size:index])
        trailing = len(self._buffer) - index - len(self.terminator)
        self.reset()

        if trailing > 0:
            logger.debug(f"Dropped {trailing} bytes after terminator")

        return FrameOutcome.complete(Frame(header=header, payload=payload))
