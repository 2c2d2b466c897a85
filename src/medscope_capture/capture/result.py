"""
Capture Result
==============

Tagged result returned for every capture attempt.

A result is either a success (frame plus classification) or a failure
carrying a FailureKind and reason. ``CaptureCoordinator.capture`` never
raises for protocol, transport or inference failures; it returns one of
these instead.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from medscope_capture.models.capture import (
    CaptureFailure,
    CaptureRequest,
    CaptureStatus,
    FailureKind,
)
from medscope_capture.models.inference import Diagnosis, InferenceResponse
from medscope_capture.protocol.frame import Frame


@dataclass
class CaptureResult:
    """
    Outcome of one capture request.

    Attributes:
        status: Final request status (FRAME_COMPLETE or FAILED)
        started_at: UNIX timestamp when the request began
        finished_at: UNIX timestamp when the request ended
        history: Statuses the request passed through
        failure: Failure detail, None on success
        frame: Assembled frame, if one was received
        inference: Classification response, if inference succeeded
        diagnosis: Summary of the top prediction
    """

    status: CaptureStatus
    started_at: float
    finished_at: float = field(default_factory=time.time)
    history: List[CaptureStatus] = field(default_factory=list)
    failure: Optional[CaptureFailure] = None
    frame: Optional[Frame] = None
    inference: Optional[InferenceResponse] = None
    diagnosis: Optional[Diagnosis] = None

    @classmethod
    def from_request(
        cls,
        request: CaptureRequest,
        frame: Optional[Frame] = None,
        inference: Optional[InferenceResponse] = None,
        diagnosis: Optional[Diagnosis] = None,
    ) -> "CaptureResult":
        return cls(
            status=request.status,
            started_at=request.started_at,
            history=list(request.history),
            failure=request.failure,
            frame=frame,
            inference=inference,
            diagnosis=diagnosis,
        )

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def failure_kind(self) -> Optional[FailureKind]:
        return self.failure.kind if self.failure else None

    @property
    def elapsed(self) -> float:
        return self.finished_at - self.started_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization (payload summarised)."""
        return {
            "ok": self.ok,
            "status": self.status.value,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "elapsed_seconds": round(self.elapsed, 3),
            "history": [status.value for status in self.history],
            "failure": self.failure.model_dump(mode="json") if self.failure else None,
            "frame": {
                "header": self.frame.header.hex(),
                "payload_size": self.frame.payload_size,
                "received_at": self.frame.received_at,
            } if self.frame else None,
            "inference": (
                self.inference.model_dump(mode="json", by_alias=True)
                if self.inference else None
            ),
            "diagnosis": self.diagnosis.model_dump(mode="json") if self.diagnosis else None,
        }
