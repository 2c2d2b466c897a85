"""
Terminator Scanner
==================

Pure byte-pattern search for the end-of-frame marker.

The scan always covers the whole accumulated buffer, not just the bytes
appended by the latest chunk, so a terminator split across two deliveries
is still found.
"""

from typing import Optional, Union

from medscope_capture.protocol.frame import TERMINATOR


def find_terminator(
    buffer: Union[bytes, bytearray],
    terminator: bytes = TERMINATOR,
) -> Optional[int]:
    """
    Find the first occurrence of the terminator in the buffer.

    Args:
        buffer: Accumulated bytes
        terminator: 2-byte end-of-frame pattern

    Returns:
        Lowest index i such that buffer[i:i+2] == terminator, or None
    """
    if len(terminator) != 2:
        raise ValueError("terminator must be exactly 2 bytes")

    index = buffer.find(terminator)
    if index < 0:
        return None
    return index
