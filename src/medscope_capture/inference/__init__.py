"""
Inference Module
================

Image classification collaborator.

The capture core treats classification as a black box: JPEG bytes in,
InferenceResponse out.

Components:
    - InferenceClient: Protocol for classification backends
    - MockInferenceClient: Deterministic mock
    - HttpInferenceClient: Hosted model over HTTP
"""

from medscope_capture.inference.engine import (
    InferenceClient,
    InferenceError,
    MockInferenceClient,
)
from medscope_capture.inference.http_client import HttpInferenceClient

__all__ = [
    "InferenceClient",
    "InferenceError",
    "MockInferenceClient",
    "HttpInferenceClient",
]
