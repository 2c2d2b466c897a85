"""
HTTP Inference Client
=====================

Classification over a hosted model endpoint.

Request:
    POST {base_url}/{model_id}?api_key=<key>
    Content-Type: application/x-www-form-urlencoded
    Body: base64 of the JPEG bytes

Response:
    JSON object with a ``predictions`` list (see models.inference)

Design Rules:
    - Never log the API key
    - Non-2xx, transport errors, non-JSON and unexpected shapes all raise
      InferenceError
    - Blocking HTTP runs in a worker thread so the event loop keeps serving
      the device socket
"""

import asyncio
import base64
import logging
from typing import Optional

import requests
from pydantic import ValidationError

from medscope_capture.inference.engine import InferenceError
from medscope_capture.models.inference import InferenceResponse


logger = logging.getLogger(__name__)


FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class HttpInferenceClient:
    """
    Client for a hosted classification model.

    Attributes:
        base_url: Service root, e.g. "https://serverless.roboflow.com"
        model_id: Model path, e.g. "pharyngitis-dataset/3"
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        model_id: str,
        api_key: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Initialize HTTP inference client.

        Args:
            base_url: Service root URL
            model_id: Model identifier appended to the URL
            api_key: API key sent as a query parameter
            timeout: Request timeout in seconds
            session: Optional requests.Session (connection reuse, tests)

        Raises:
            ValueError: If base_url or model_id is empty
        """
        if not base_url or not model_id:
            raise ValueError("base_url and model_id are required")

        self.base_url = base_url.rstrip("/")
        self.model_id = model_id.strip("/")
        self.timeout = timeout
        self._api_key = api_key
        self._session = session or requests.Session()

        self._call_count: int = 0
        self._error_count: int = 0

        logger.info(f"HttpInferenceClient initialized: url={self.url}, timeout={timeout}s")

    @property
    def url(self) -> str:
        return f"{self.base_url}/{self.model_id}"

    async def classify(self, image: bytes) -> InferenceResponse:
        """
        Send one image for classification.

        Args:
            image: JPEG bytes

        Returns:
            Parsed InferenceResponse

        Raises:
            InferenceError: On any request or response failure
        """
        body = base64.b64encode(image).decode("ascii")

        logger.info(
            f"Inference request: POST {self.url} api_key=**** "
            f"image={len(image)}B body={len(body)}B"
        )

        self._call_count += 1
        try:
            response = await asyncio.to_thread(self._post, body)
        except InferenceError as e:
            self._error_count += 1
            logger.error(f"Inference failed: {e}. Total errors: {self._error_count}")
            raise

        logger.info(f"Inference response: {len(response.predictions)} predictions")
        return response

    def _post(self, body: str) -> InferenceResponse:
        try:
            response = self._session.post(
                self.url,
                params={"api_key": self._api_key},
                data=body,
                headers={"Content-Type": FORM_CONTENT_TYPE},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise InferenceError(f"Request to {self.url} failed: {type(e).__name__}") from e

        if not response.ok:
            raise InferenceError(
                f"Inference service returned HTTP {response.status_code}: "
                f"{response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise InferenceError("Inference service returned non-JSON body") from e

        try:
            return InferenceResponse.model_validate(data)
        except ValidationError as e:
            raise InferenceError(f"Unexpected inference response: {e.error_count()} errors") from e

    def get_metrics(self) -> dict:
        return {
            "backend": "http",
            "call_count": self._call_count,
            "error_count": self._error_count,
        }
