"""
Capture State Models
====================

Lifecycle of a single capture request.

State Flow:
    IDLE -> RESOLUTION_SENT        (SetResolution written)
    RESOLUTION_SENT -> CAPTURE_SENT (settle delay elapsed, Capture written)
    CAPTURE_SENT -> RECEIVING      (first inbound chunk)
    RECEIVING -> RECEIVING         (each incomplete chunk)
    RECEIVING -> FRAME_COMPLETE    (terminator seen after full header)
    * -> FAILED                    (connection, write, corrupt, timeout, inference)

FRAME_COMPLETE and FAILED are terminal; the coordinator returns to IDLE
after reporting either one.
"""

import time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class CaptureStatus(str, Enum):
    """
    Status of a capture request.

    Attributes:
        IDLE: No capture in flight
        RESOLUTION_SENT: Resolution selector written, waiting for settle delay
        CAPTURE_SENT: Capture command written, nothing received yet
        RECEIVING: Frame bytes arriving
        FRAME_COMPLETE: Frame assembled
        FAILED: Request aborted, see failure
    """

    IDLE = "IDLE"
    RESOLUTION_SENT = "RESOLUTION_SENT"
    CAPTURE_SENT = "CAPTURE_SENT"
    RECEIVING = "RECEIVING"
    FRAME_COMPLETE = "FRAME_COMPLETE"
    FAILED = "FAILED"


class FailureKind(str, Enum):
    """
    Machine-readable failure categories.

    Attributes:
        CONNECTION_ERROR: No device, socket error, or socket closed
        WRITE_ERROR: Command could not be written
        CORRUPT: Assembler rejected the buffered bytes
        TIMEOUT: Device stopped sending before the frame completed
        INFERENCE_ERROR: Inference service call failed
        BUSY: Another capture is already in flight
    """

    CONNECTION_ERROR = "CONNECTION_ERROR"
    WRITE_ERROR = "WRITE_ERROR"
    CORRUPT = "CORRUPT"
    TIMEOUT = "TIMEOUT"
    INFERENCE_ERROR = "INFERENCE_ERROR"
    BUSY = "BUSY"


class CaptureFailure(BaseModel):
    """Why a capture request failed."""

    kind: FailureKind = Field(..., description="Failure category")
    reason: str = Field(..., description="Human-readable detail")


class CaptureRequest(BaseModel):
    """
    One in-flight capture.

    Attributes:
        status: Current status
        started_at: UNIX timestamp when the request began (observability only)
        history: Every status entered, in order
        failure: Set once the request has failed
    """

    status: CaptureStatus = Field(
        default=CaptureStatus.IDLE,
        description="Current status",
    )

    started_at: float = Field(
        default_factory=time.time,
        description="UNIX timestamp when the request began",
    )

    history: List[CaptureStatus] = Field(
        default_factory=lambda: [CaptureStatus.IDLE],
        description="Statuses entered, in order",
    )

    failure: Optional[CaptureFailure] = Field(
        default=None,
        description="Failure detail, if any",
    )

    class Config:
        """Pydantic model configuration."""

        use_enum_values = False  # Keep enum as enum, not string

    def advance(self, status: CaptureStatus) -> None:
        """Move to a new status, recording it in history."""
        self.status = status
        self.history.append(status)

    def fail(self, kind: FailureKind, reason: str) -> None:
        """Move to FAILED, preserving the reason."""
        self.failure = CaptureFailure(kind=kind, reason=reason)
        self.advance(CaptureStatus.FAILED)

    @property
    def is_terminal(self) -> bool:
        return self.status in (CaptureStatus.FRAME_COMPLETE, CaptureStatus.FAILED)
