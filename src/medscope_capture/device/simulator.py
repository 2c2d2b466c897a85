"""
Camera Module Simulator
=======================

Stand-in for the embedded camera module, for development without hardware.

The simulator dials in to the device listener, waits for commands and
answers each Capture with ``header + image + terminator`` split into
chunks, the way the real module streams a frame.

Example:
    simulator = CameraSimulator(image=jpeg_bytes, chunk_size=1024)
    await simulator.connect("127.0.0.1", 8080)
    await simulator.serve()
"""

import asyncio
import logging
from typing import List, Optional

from medscope_capture.protocol.commands import Opcode
from medscope_capture.protocol.frame import HEADER_SIZE, TERMINATOR


logger = logging.getLogger(__name__)


DEFAULT_HEADER = bytes(range(HEADER_SIZE))


def build_frame(image: bytes, header: bytes = DEFAULT_HEADER) -> bytes:
    """Wire bytes for one frame."""
    if len(header) != HEADER_SIZE:
        raise ValueError(f"header must be {HEADER_SIZE} bytes")
    return header + image + TERMINATOR


def split_chunks(data: bytes, chunk_size: int) -> List[bytes]:
    """Split data into chunk_size pieces (last one may be shorter)."""
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")
    return [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)]


class CameraSimulator:
    """
    Simulated camera module.

    Attributes:
        image: Bytes sent as the frame payload
        header: 8 header bytes sent before the payload
        chunk_size: Bytes per write when streaming a frame
        chunk_delay: Seconds between chunk writes
        resolution_codes: Selector bytes received, in order
        captures: Number of Capture commands answered
    """

    def __init__(
        self,
        image: bytes,
        header: bytes = DEFAULT_HEADER,
        chunk_size: int = 1024,
        chunk_delay: float = 0.0,
    ) -> None:
        self.image = image
        self.header = header
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay

        self.resolution_codes: List[int] = []
        self.captures: int = 0

        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    async def connect(self, host: str, port: int) -> None:
        """Open the TCP connection to the listener."""
        self._reader, self._writer = await asyncio.open_connection(host, port)
        logger.info(f"Simulator connected to {host}:{port}")

    async def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
            try:
                await self._writer.wait_closed()
            except (ConnectionError, OSError):
                pass  # Listener already dropped us
            self._writer = None

    async def serve(self) -> None:
        """
        Answer commands until the listener closes the connection.

        Unknown opcodes are logged and ignored.
        """
        if self._reader is None:
            raise RuntimeError("Simulator is not connected")

        while True:
            opcode = await self._reader.read(1)
            if not opcode:
                logger.info("Listener closed the connection")
                break

            if opcode[0] == Opcode.SET_RESOLUTION:
                selector = await self._reader.readexactly(1)
                self.resolution_codes.append(selector[0])
                logger.info(f"Resolution set to 0x{selector[0]:02x}")
            elif opcode[0] == Opcode.CAPTURE:
                self.captures += 1
                await self.send_frame()
            else:
                logger.warning(f"Ignoring unknown opcode 0x{opcode[0]:02x}")

    async def send_frame(self) -> None:
        """Stream one frame in chunks."""
        frame = build_frame(self.image, self.header)
        chunks = split_chunks(frame, self.chunk_size)

        logger.info(f"Sending frame: {len(frame)} bytes in {len(chunks)} chunks")
        for chunk in chunks:
            self._writer.write(chunk)
            await self._writer.drain()
            if self.chunk_delay:
                await asyncio.sleep(self.chunk_delay)
