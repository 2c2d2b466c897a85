"""
Inference Engine
================

Protocol for the image classification collaborator, plus a deterministic
mock for development without network access.

Design Rules:
    - Takes raw JPEG bytes, returns an InferenceResponse
    - Failures surface as InferenceError; no retries here
    - Mock output depends only on the image bytes
"""

import logging
import zlib
from typing import Protocol, Sequence

from medscope_capture.models.inference import InferenceResponse, Prediction


logger = logging.getLogger(__name__)


class InferenceError(Exception):
    """Raised when the classification service call fails."""
    pass


class InferenceClient(Protocol):
    """
    Protocol for classification backends.

    Implemented by:
        - MockInferenceClient (development, tests)
        - HttpInferenceClient (hosted model over HTTP)
    """

    async def classify(self, image: bytes) -> InferenceResponse:
        """
        Classify one encoded image.

        Args:
            image: JPEG bytes as received from the camera module

        Returns:
            InferenceResponse with ranked predictions

        Raises:
            InferenceError: If classification fails
        """
        ...


class MockInferenceClient:
    """
    Deterministic mock classifier.

    The CRC32 of the image picks the top class and a confidence in
    [0.7, 1.0), so the same bytes always classify the same way.

    Attributes:
        labels: Class labels, index is the class id
    """

    def __init__(self, labels: Sequence[str] = ("no", "phar")) -> None:
        if not labels:
            raise ValueError("labels must not be empty")

        self.labels = list(labels)
        self._call_count: int = 0

        logger.info(f"MockInferenceClient initialized: labels={self.labels}")

    async def classify(self, image: bytes) -> InferenceResponse:
        self._call_count += 1

        seed = zlib.crc32(image)
        top_id = seed % len(self.labels)
        confidence = 0.7 + (seed % 300) / 1000

        predictions = [
            Prediction(label=self.labels[top_id], class_id=top_id, confidence=confidence)
        ]
        remainder = round(1.0 - confidence, 3)
        for class_id, label in enumerate(self.labels):
            if class_id != top_id:
                predictions.append(
                    Prediction(label=label, class_id=class_id, confidence=remainder)
                )
                remainder = 0.0

        return InferenceResponse(predictions=predictions)

    @property
    def call_count(self) -> int:
        return self._call_count

    def get_metrics(self) -> dict:
        return {"backend": "mock", "call_count": self._call_count}
