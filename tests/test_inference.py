"""
Inference Client Tests
======================

HTTP request shape, error surfacing, mock determinism and response models.
"""

import asyncio
import base64

import pytest
import requests

from medscope_capture.inference import HttpInferenceClient, InferenceError, MockInferenceClient
from medscope_capture.models.inference import Diagnosis, InferenceResponse


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


class FakeSession:
    """Records the last POST and returns a canned response."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


SAMPLE_BODY = {
    "time": 0.12,
    "predictions": [
        {"class": "phar", "class_id": 1, "confidence": 0.87},
        {"class": "no", "class_id": 0, "confidence": 0.13},
    ],
}


def make_client(session):
    return HttpInferenceClient(
        base_url="https://inference.example.com/",
        model_id="pharyngitis-dataset/3",
        api_key="secret-key",
        timeout=3.0,
        session=session,
    )


class TestHttpInferenceClient:
    """Tests for HttpInferenceClient."""

    def test_request_shape(self):
        session = FakeSession(FakeResponse(body=SAMPLE_BODY))
        client = make_client(session)
        image = b"\xff\xd8jpegdata\xff\xd9"

        response = asyncio.run(client.classify(image))

        url, kwargs = session.calls[0]
        assert url == "https://inference.example.com/pharyngitis-dataset/3"
        assert kwargs["params"] == {"api_key": "secret-key"}
        assert kwargs["data"] == base64.b64encode(image).decode("ascii")
        assert kwargs["headers"]["Content-Type"] == "application/x-www-form-urlencoded"
        assert kwargs["timeout"] == 3.0
        assert response.top_prediction.label == "phar"
        assert response.top_prediction.class_id == 1

    def test_api_key_not_logged(self, caplog):
        client = make_client(FakeSession(FakeResponse(body=SAMPLE_BODY)))

        with caplog.at_level("DEBUG"):
            asyncio.run(client.classify(b"img"))

        assert "secret-key" not in caplog.text

    def test_non_2xx_raises(self):
        client = make_client(FakeSession(FakeResponse(status_code=403, text="Forbidden")))

        with pytest.raises(InferenceError, match="HTTP 403"):
            asyncio.run(client.classify(b"img"))

        assert client.get_metrics()["error_count"] == 1

    def test_non_json_raises(self):
        client = make_client(FakeSession(FakeResponse(body=None, text="<html>")))

        with pytest.raises(InferenceError, match="non-JSON"):
            asyncio.run(client.classify(b"img"))

    def test_unexpected_shape_raises(self):
        body = {"predictions": [{"class": "no", "class_id": 0, "confidence": 4.2}]}
        client = make_client(FakeSession(FakeResponse(body=body)))

        with pytest.raises(InferenceError):
            asyncio.run(client.classify(b"img"))

    def test_transport_error_raises(self):
        session = FakeSession(error=requests.ConnectionError("connection refused"))
        client = make_client(session)

        with pytest.raises(InferenceError):
            asyncio.run(client.classify(b"img"))

    def test_requires_url_and_model(self):
        with pytest.raises(ValueError):
            HttpInferenceClient(base_url="", model_id="m", api_key="k")


class TestMockInferenceClient:
    """Tests for MockInferenceClient."""

    def test_deterministic(self):
        client = MockInferenceClient()

        first = asyncio.run(client.classify(b"same image"))
        second = asyncio.run(client.classify(b"same image"))

        assert first == second
        assert client.call_count == 2

    def test_predictions_cover_all_labels(self):
        response = asyncio.run(MockInferenceClient(labels=("no", "phar")).classify(b"x"))

        assert {p.label for p in response.predictions} == {"no", "phar"}
        top = response.top_prediction
        assert 0.7 <= top.confidence < 1.0


class TestInferenceModels:
    """Tests for InferenceResponse and Diagnosis."""

    def test_extra_keys_ignored(self):
        response = InferenceResponse.model_validate(SAMPLE_BODY)

        assert len(response.predictions) == 2

    def test_dump_uses_wire_names(self):
        response = InferenceResponse.model_validate(SAMPLE_BODY)

        dumped = response.model_dump(by_alias=True)

        assert dumped["predictions"][0]["class"] == "phar"

    def test_diagnosis_from_top_prediction(self):
        response = InferenceResponse.model_validate(SAMPLE_BODY)

        diagnosis = Diagnosis.from_response(response, healthy_class="no")

        assert diagnosis.result == "phar"
        assert diagnosis.confidence == pytest.approx(0.87)
        assert diagnosis.is_healthy is False

    def test_diagnosis_empty_response(self):
        assert Diagnosis.from_response(InferenceResponse()) is None
