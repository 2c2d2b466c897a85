"""
Inference Response Schema
=========================

Pydantic models for the JSON returned by the image classification service.

Response Contract:
    {
        "predictions": [
            {"class": "phar", "class_id": 1, "confidence": 0.93},
            {"class": "no", "class_id": 0, "confidence": 0.07}
        ]
    }

Any other keys in the response are ignored.

Example:
    from medscope_capture.models.inference import InferenceResponse

    response = InferenceResponse.model_validate(raw_json)
    top = response.top_prediction
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class Prediction(BaseModel):
    """
    One classification entry.

    Attributes:
        label: Class label ("class" on the wire)
        class_id: Numeric class id
        confidence: Score in [0, 1]
    """

    label: str = Field(..., alias="class", description="Class label")
    class_id: int = Field(..., description="Numeric class id")
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Confidence score",
    )

    class Config:
        """Pydantic model configuration."""

        populate_by_name = True


class InferenceResponse(BaseModel):
    """Classification result for one captured image."""

    predictions: List[Prediction] = Field(
        default_factory=list,
        description="Predicted classes",
    )

    class Config:
        """Pydantic model configuration."""

        json_schema_extra = {
            "example": {
                "predictions": [
                    {"class": "no", "class_id": 0, "confidence": 0.91},
                ]
            }
        }

    @property
    def top_prediction(self) -> Optional[Prediction]:
        """The first prediction, as ranked by the service."""
        if not self.predictions:
            return None
        return self.predictions[0]


class Diagnosis(BaseModel):
    """
    Summary of the top prediction.

    Attributes:
        result: Top class label
        confidence: Top class confidence
        is_healthy: Whether the label matches the configured healthy class
    """

    result: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    is_healthy: bool

    @classmethod
    def from_response(
        cls,
        response: InferenceResponse,
        healthy_class: str = "no",
    ) -> Optional["Diagnosis"]:
        """Build a diagnosis from a response, or None if it has no predictions."""
        top = response.top_prediction
        if top is None:
            return None
        return cls(
            result=top.label,
            confidence=top.confidence,
            is_healthy=top.label == healthy_class,
        )
