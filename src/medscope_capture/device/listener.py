"""
Device Listener
===============

TCP accept loop for the camera module.

The camera module dials in; this side listens. The listener owns zero or
one DeviceSession at a time and is passed around explicitly rather than
living in module state.

Design Rules:
    - At most one live session; a second connection while one is
      CONNECTED is closed immediately
    - The accept callback runs the session's read loop, so there is
      exactly one reader per socket
    - Session failures never stop the listener
"""

import asyncio
import logging
from typing import Optional

from medscope_capture.device.session import (
    DEFAULT_READ_SIZE,
    DeviceConnectionError,
    DeviceSession,
)
from medscope_capture.protocol.assembler import FrameAssembler


logger = logging.getLogger(__name__)


class ListenerMetrics:
    """Metrics for DeviceListener observability."""

    __slots__ = (
        "connections_accepted",
        "connections_rejected",
    )

    def __init__(self) -> None:
        self.connections_accepted: int = 0
        self.connections_rejected: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "connections_accepted": self.connections_accepted,
            "connections_rejected": self.connections_rejected,
        }


class DeviceListener:
    """
    Accepts camera module connections.

    Attributes:
        host: Bind address
        port: Requested bind port (0 picks a free port)
        max_expected_size: Size bound handed to each session's assembler
        read_size: Maximum bytes per socket read
        write_timeout: Drain timeout for command writes
        metrics: Operational metrics

    Example:
        listener = DeviceListener(host="0.0.0.0", port=8080, max_expected_size=204800)
        await listener.start()

        session = await listener.open_session(timeout=5.0)
        ...
        await listener.stop()
    """

    def __init__(
        self,
        host: str,
        port: int,
        max_expected_size: int,
        read_size: int = DEFAULT_READ_SIZE,
        write_timeout: Optional[float] = 5.0,
    ) -> None:
        self.host = host
        self.port = port
        self.max_expected_size = max_expected_size
        self.read_size = read_size
        self.write_timeout = write_timeout

        self.metrics = ListenerMetrics()

        self._server: Optional[asyncio.AbstractServer] = None
        self._session: Optional[DeviceSession] = None
        self._session_ready: asyncio.Event = asyncio.Event()
        self._bound_port: Optional[int] = None
        self._stopping: bool = False

    @property
    def is_running(self) -> bool:
        return self._server is not None

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually bound, once started."""
        return self._bound_port

    @property
    def session(self) -> Optional[DeviceSession]:
        """The live session, if a device is connected."""
        if self._session is not None and self._session.is_connected:
            return self._session
        return None

    async def start(self) -> None:
        """Bind and begin accepting connections."""
        if self._server is not None:
            return

        self._stopping = False
        self._server = await asyncio.start_server(
            self._handle_connection,
            host=self.host,
            port=self.port,
        )
        self._bound_port = self._server.sockets[0].getsockname()[1]
        logger.info(f"Device listener on {self.host}:{self._bound_port}")

    async def stop(self) -> None:
        """Close the live session and stop accepting."""
        logger.info("Device listener stopping...")

        # Wake anyone still waiting in open_session
        self._stopping = True
        self._session_ready.set()

        if self._session is not None:
            await self._session.close()

        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

        logger.info("Device listener stopped")

    async def open_session(self, timeout: Optional[float] = None) -> DeviceSession:
        """
        Return the live session, waiting for a device if none is connected.

        Args:
            timeout: Seconds to wait for a device. None = wait forever.

        Raises:
            DeviceConnectionError: If not listening, the listener stops while
                waiting, or no device connects in time
        """
        if not self.is_running:
            raise DeviceConnectionError("Device listener is not running")

        if self.session is not None:
            return self.session

        logger.info("Waiting for camera module to connect...")
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while self.session is None:
            if self._stopping:
                raise DeviceConnectionError("Device listener stopped")

            # Event may still be set for a session that just went away
            if self._session_ready.is_set():
                self._session_ready.clear()

            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            try:
                await asyncio.wait_for(self._session_ready.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                raise DeviceConnectionError(
                    f"No camera module connected within {timeout}s"
                ) from None

        return self.session

    def status(self) -> dict:
        """Listener status for observability."""
        session = self.session
        return {
            "is_running": self.is_running,
            "address": self.host,
            "port": self._bound_port if self._bound_port is not None else self.port,
            "clients": 1 if session is not None else 0,
            "peer": str(session.peer) if session is not None else None,
        }

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """Accept callback: reject extras, otherwise run the session."""
        peer = writer.get_extra_info("peername")

        if self.session is not None:
            self.metrics.connections_rejected += 1
            logger.warning(
                f"Rejected connection from {peer}: "
                f"session with {self._session.peer} already active"
            )
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass  # Peer already gone
            return

        session = DeviceSession(
            reader,
            writer,
            FrameAssembler(self.max_expected_size),
            read_size=self.read_size,
            write_timeout=self.write_timeout,
        )
        self._session = session
        self.metrics.connections_accepted += 1
        self._session_ready.set()
        logger.info(f"Camera module connected: {peer}")

        try:
            await session.run()
        finally:
            if self._session is session:
                self._session = None
                self._session_ready.clear()
