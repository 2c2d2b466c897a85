"""
Data Models
===========

Pydantic models for medscope-capture.

Models:
    Capture:
        - CaptureStatus: Status of a capture request
        - FailureKind: Failure categories
        - CaptureFailure: Kind + reason
        - CaptureRequest: One in-flight capture

    Inference:
        - Prediction: One class/confidence entry
        - InferenceResponse: Classification service response
        - Diagnosis: Summary of the top prediction
"""

from medscope_capture.models.capture import (
    CaptureFailure,
    CaptureRequest,
    CaptureStatus,
    FailureKind,
)
from medscope_capture.models.inference import Diagnosis, InferenceResponse, Prediction

__all__ = [
    # Capture
    "CaptureStatus",
    "FailureKind",
    "CaptureFailure",
    "CaptureRequest",
    # Inference
    "Prediction",
    "InferenceResponse",
    "Diagnosis",
]
