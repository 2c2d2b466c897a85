"""
Device Session
==============

One TCP connection to the camera module.

The session:
    - Owns the socket (asyncio StreamReader/StreamWriter pair)
    - Writes encoded commands under a write timeout
    - Runs the single read loop for its socket and feeds every chunk
      to its FrameAssembler in arrival order
    - Hands assembler outcomes to whoever armed it with ``begin_receive``

Design Rules:
    - Exactly one reader per socket (``run``), so the assembler is never
      fed concurrently
    - Commands are send-and-forget; the device never acknowledges them
    - ``close`` is idempotent and discards any partially assembled frame
    - Outcomes produced while nobody is waiting are dropped
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, Union

from medscope_capture.protocol.assembler import FrameAssembler, FrameOutcome, OutcomeKind
from medscope_capture.protocol.commands import Command, encode_command


logger = logging.getLogger(__name__)


DEFAULT_READ_SIZE = 4096


class DeviceConnectionError(ConnectionError):
    """Raised when no device is available or its socket fails or closes."""
    pass


class CommandWriteError(Exception):
    """Raised when a command could not be written to the device."""
    pass


class SessionState(str, Enum):
    """
    Connection state of a device session.

    Attributes:
        CONNECTED: Socket open, read loop running
        DISCONNECTED: Device closed the socket or it failed
        CLOSED: Torn down locally
    """

    DISCONNECTED = "DISCONNECTED"
    CONNECTED = "CONNECTED"
    CLOSED = "CLOSED"


class SessionMetrics:
    """Metrics for DeviceSession observability."""

    __slots__ = (
        "bytes_received",
        "chunks_received",
        "commands_sent",
        "frames_completed",
        "frames_corrupt",
        "outcomes_dropped",
    )

    def __init__(self) -> None:
        self.bytes_received: int = 0
        self.chunks_received: int = 0
        self.commands_sent: int = 0
        self.frames_completed: int = 0
        self.frames_corrupt: int = 0
        self.outcomes_dropped: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "bytes_received": self.bytes_received,
            "chunks_received": self.chunks_received,
            "commands_sent": self.commands_sent,
            "frames_completed": self.frames_completed,
            "frames_corrupt": self.frames_corrupt,
            "outcomes_dropped": self.outcomes_dropped,
        }


class DeviceSession:
    """
    A connected camera module.

    Created by DeviceListener once a device completes the TCP handshake.

    Attributes:
        peer: Remote address of the device
        assembler: FrameAssembler owning the receive buffer
        read_size: Maximum bytes per socket read
        write_timeout: Seconds allowed for a command write to drain
        metrics: Operational metrics

    Example:
        session.begin_receive()
        try:
            await session.send_command(Capture())
            outcome = await session.next_outcome(timeout=10.0)
        finally:
            session.end_receive()
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        assembler: FrameAssembler,
        read_size: int = DEFAULT_READ_SIZE,
        write_timeout: Optional[float] = 5.0,
    ) -> None:
        """
        Initialize a session around an accepted connection.

        Args:
            reader: Stream reader for the accepted socket
            writer: Stream writer for the accepted socket
            assembler: Assembler that will receive every inbound chunk
            read_size: Maximum bytes per read
            write_timeout: Drain timeout for command writes (None = no limit)
        """
        self._reader = reader
        self._writer = writer
        self.assembler = assembler
        self.read_size = read_size
        self.write_timeout = write_timeout

        self.peer = writer.get_extra_info("peername")
        self.metrics = SessionMetrics()

        self._state = SessionState.CONNECTED
        self._closed_reason: Optional[str] = None
        self._armed: bool = False
        self._outcomes: "asyncio.Queue[Union[FrameOutcome, DeviceConnectionError]]" = asyncio.Queue()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        """Whether the socket is open."""
        return self._state is SessionState.CONNECTED

    @property
    def closed_reason(self) -> Optional[str]:
        return self._closed_reason

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    async def send_command(self, command: Command) -> None:
        """
        Encode and write a command.

        Does not wait for any device response.

        Raises:
            DeviceConnectionError: If the session is no longer connected
            CommandWriteError: If the write fails or does not drain in time
        """
        data = encode_command(command)
        if not data:
            logger.debug(f"{type(command).__name__} has no wire form, nothing sent")
            return

        if not self.is_connected:
            raise DeviceConnectionError(
                f"Cannot send {type(command).__name__}: {self._closed_reason or 'not connected'}"
            )

        try:
            self._writer.write(data)
            await asyncio.wait_for(self._writer.drain(), timeout=self.write_timeout)
        except asyncio.TimeoutError:
            raise CommandWriteError(
                f"{type(command).__name__} write did not drain within {self.write_timeout}s"
            ) from None
        except (ConnectionError, OSError) as e:
            raise CommandWriteError(f"{type(command).__name__} write failed: {e}") from e

        self.metrics.commands_sent += 1
        logger.info(f"Sent {type(command).__name__} ({data.hex()}) to {self.peer}")

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """
        Read from the socket until it closes.

        This is the only consumer of the socket. Returns once the device
        disconnects or the session is closed.
        """
        logger.info(f"Session started for {self.peer}")

        try:
            while self.is_connected:
                chunk = await self._reader.read(self.read_size)
                if not chunk:
                    self._teardown(SessionState.DISCONNECTED, "socket closed by device")
                    break
                self.on_bytes(chunk)
        except (ConnectionError, OSError) as e:
            self._teardown(SessionState.DISCONNECTED, f"socket error: {e}")
        finally:
            await self.close()

        logger.info(f"Session ended for {self.peer}: {self._closed_reason}")

    def on_bytes(self, chunk: bytes) -> FrameOutcome:
        """
        Feed one inbound chunk to the assembler.

        Args:
            chunk: Bytes in arrival order

        Returns:
            The assembler outcome for this chunk
        """
        self.metrics.bytes_received += len(chunk)
        self.metrics.chunks_received += 1

        outcome = self.assembler.feed(chunk)

        if outcome.kind is OutcomeKind.COMPLETE:
            self.metrics.frames_completed += 1
            logger.info(f"Frame complete: {outcome.frame!r}")
        elif outcome.kind is OutcomeKind.CORRUPT:
            self.metrics.frames_corrupt += 1

        if self._armed:
            self._outcomes.put_nowait(outcome)
        elif not outcome.is_incomplete:
            self.metrics.outcomes_dropped += 1
            logger.warning(
                f"Dropped {outcome.kind.value} outcome from {self.peer}: no capture in flight"
            )

        return outcome

    def begin_receive(self) -> None:
        """
        Start delivering outcomes to ``next_outcome``.

        Stale bytes and outcomes from before this call are discarded.
        """
        self._drain_outcomes()
        stale = self.assembler.reset()
        if stale:
            logger.warning(f"Discarded {stale} stale bytes before capture")
        self._armed = True

    def end_receive(self) -> None:
        """Stop delivering outcomes."""
        self._armed = False
        self._drain_outcomes()

    async def next_outcome(self, timeout: Optional[float] = None) -> FrameOutcome:
        """
        Wait for the next assembler outcome.

        Args:
            timeout: Seconds to wait. None = wait forever.

        Returns:
            Next FrameOutcome

        Raises:
            DeviceConnectionError: If the session closes first
            asyncio.TimeoutError: If nothing arrives within timeout
        """
        if not self.is_connected and self._outcomes.empty():
            raise DeviceConnectionError(self._closed_reason or "session not connected")

        item = await asyncio.wait_for(self._outcomes.get(), timeout=timeout)

        if isinstance(item, DeviceConnectionError):
            raise item
        return item

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """
        Close the socket and discard any partial frame.

        Safe to call more than once.
        """
        self._teardown(SessionState.CLOSED, "session closed")

        try:
            await self._writer.wait_closed()
        except (ConnectionError, OSError):
            pass  # Socket already broken, nothing left to flush

    def _teardown(self, state: SessionState, reason: str) -> None:
        """Move to a non-connected state exactly once."""
        if not self.is_connected:
            return

        self._state = state
        self._closed_reason = reason

        discarded = self.assembler.reset()
        if discarded:
            logger.warning(f"Discarded {discarded} buffered bytes on teardown")

        self._writer.close()

        if self._armed:
            self._outcomes.put_nowait(DeviceConnectionError(reason))

        logger.info(f"Session {state.value.lower()} ({self.peer}): {reason}")

    def _drain_outcomes(self) -> None:
        while True:
            try:
                self._outcomes.get_nowait()
            except asyncio.QueueEmpty:
                break
