"""
Device Module
=============

TCP transport for the camera module.

Components:
    - DeviceListener: Accept loop owning zero or one session
    - DeviceSession: One connection; command writes and the read loop
    - DeviceConnectionError, CommandWriteError: Transport failures
"""

from medscope_capture.device.session import (
    CommandWriteError,
    DeviceConnectionError,
    DeviceSession,
    SessionMetrics,
    SessionState,
)
from medscope_capture.device.listener import DeviceListener, ListenerMetrics


__all__ = [
    "CommandWriteError",
    "DeviceConnectionError",
    "DeviceSession",
    "SessionMetrics",
    "SessionState",
    "DeviceListener",
    "ListenerMetrics",
]
