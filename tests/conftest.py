"""
Test Configuration
==================

Pytest fixtures and test configuration for medscope-capture.

Async code is driven with ``asyncio.run`` from synchronous tests.
"""

import asyncio
from contextlib import asynccontextmanager

import pytest

from medscope_capture.device.listener import DeviceListener


class FakeDevice:
    """Plays the camera module over a real TCP connection."""

    def __init__(self) -> None:
        self.reader = None
        self.writer = None

    async def connect(self, port: int) -> None:
        self.reader, self.writer = await asyncio.open_connection("127.0.0.1", port)

    async def read_command(self, size: int, timeout: float = 2.0) -> bytes:
        return await asyncio.wait_for(self.reader.readexactly(size), timeout=timeout)

    async def send(self, data: bytes) -> None:
        self.writer.write(data)
        await self.writer.drain()
        # Let the listener read this chunk on its own
        await asyncio.sleep(0.02)

    async def closed_by_peer(self, timeout: float = 2.0) -> bool:
        data = await asyncio.wait_for(self.reader.read(1), timeout=timeout)
        return data == b""

    async def close(self) -> None:
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError):
            pass


class StubWriter:
    """Minimal StreamWriter stand-in for session unit tests."""

    def __init__(self, drain_error: Exception = None) -> None:
        self.written = bytearray()
        self.closed = False
        self.drain_error = drain_error

    def write(self, data: bytes) -> None:
        self.written.extend(data)

    async def drain(self) -> None:
        if self.drain_error is not None:
            raise self.drain_error

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None

    def get_extra_info(self, name: str):
        if name == "peername":
            return ("127.0.0.1", 50000)
        return None


@asynccontextmanager
async def running_listener(max_expected_size: int = 1024, **kwargs):
    listener = DeviceListener(
        host="127.0.0.1",
        port=0,
        max_expected_size=max_expected_size,
        **kwargs,
    )
    await listener.start()
    try:
        yield listener
    finally:
        await listener.stop()


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll predicate until it holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def fake_device():
    """Factory for FakeDevice instances."""
    return FakeDevice


@pytest.fixture
def stub_writer():
    """Factory for StubWriter instances."""
    return StubWriter


@pytest.fixture
def listener_context():
    """Async context manager yielding a started listener on a free port."""
    return running_listener


@pytest.fixture
def until():
    """Async polling helper."""
    return wait_until


@pytest.fixture
def header():
    """8 opaque header bytes."""
    return b"\xa5\x5a\x00\x01\x02\x03\x04\x05"


@pytest.fixture
def payload():
    """15 bytes of JPEG-like payload."""
    return b"\xff\xd8\xff\xe0" + bytes(range(9)) + b"\xff\xd9"


@pytest.fixture
def frame_bytes(header, payload):
    """A complete frame on the wire."""
    return header + payload + b"\xff\xbb"
