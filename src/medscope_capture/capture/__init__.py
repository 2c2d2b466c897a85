"""
Capture Module
==============

End-to-end capture orchestration.

Components:
    - CaptureCoordinator: Command sequencing and frame wait
    - CaptureResult: Tagged success/failure result
"""

from medscope_capture.capture.result import CaptureResult
from medscope_capture.capture.coordinator import CaptureCoordinator, CoordinatorMetrics

__all__ = [
    "CaptureResult",
    "CaptureCoordinator",
    "CoordinatorMetrics",
]
