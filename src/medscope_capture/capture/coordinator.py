"""
Capture Coordinator
===================

Runs one capture end-to-end:

    1. Obtain the device session (waits for the camera to dial in)
    2. Send SetResolution, wait the settle delay, send Capture
    3. Wait for the assembler to produce a frame
    4. Forward the payload to the inference client

State Flow:
    IDLE -> RESOLUTION_SENT -> CAPTURE_SENT -> RECEIVING -> FRAME_COMPLETE
    any step -> FAILED

Failure handling:
    CONNECTION_ERROR  session closed
    TIMEOUT           session closed (device state unknown)
    WRITE_ERROR       session kept for a retry
    CORRUPT           session kept, buffer already cleared by the assembler
    INFERENCE_ERROR   session untouched, frame still returned
    BUSY              capture already in flight, nothing sent

Every path ends back in IDLE with a CaptureResult; nothing is raised to
the caller.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from medscope_capture.capture.result import CaptureResult
from medscope_capture.device.listener import DeviceListener
from medscope_capture.device.session import (
    CommandWriteError,
    DeviceConnectionError,
    DeviceSession,
)
from medscope_capture.inference.engine import InferenceClient, InferenceError
from medscope_capture.models.capture import CaptureRequest, CaptureStatus, FailureKind
from medscope_capture.models.inference import Diagnosis
from medscope_capture.protocol.assembler import OutcomeKind
from medscope_capture.protocol.commands import (
    DEFAULT_RESOLUTION_CODE,
    Capture,
    SetResolution,
)
from medscope_capture.protocol.frame import Frame


logger = logging.getLogger(__name__)


class CoordinatorMetrics:
    """Metrics for CaptureCoordinator observability."""

    __slots__ = (
        "captures_started",
        "captures_succeeded",
        "captures_failed",
        "failures_by_kind",
    )

    def __init__(self) -> None:
        self.captures_started: int = 0
        self.captures_succeeded: int = 0
        self.captures_failed: int = 0
        self.failures_by_kind: Dict[str, int] = {}

    def record(self, result: CaptureResult) -> None:
        if result.ok:
            self.captures_succeeded += 1
            return
        self.captures_failed += 1
        kind = result.failure_kind.value
        self.failures_by_kind[kind] = self.failures_by_kind.get(kind, 0) + 1

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "captures_started": self.captures_started,
            "captures_succeeded": self.captures_succeeded,
            "captures_failed": self.captures_failed,
            "failures_by_kind": dict(self.failures_by_kind),
        }


class CaptureCoordinator:
    """
    Orchestrates capture requests against the device listener.

    At most one request is in flight; a second call to ``capture`` while
    one is running returns a BUSY failure immediately.

    Attributes:
        listener: Source of the device session
        inference_client: Classification collaborator
        resolution_code: Selector byte sent with SetResolution
        settle_delay: Seconds between SetResolution and Capture
        connect_timeout: Seconds to wait for the camera to connect
        receive_timeout: Seconds allowed from Capture to a complete frame
            (None = wait forever)
        healthy_class: Label treated as a healthy diagnosis
        metrics: Operational metrics

    Example:
        coordinator = CaptureCoordinator(listener, MockInferenceClient())
        result = await coordinator.capture()
        if result.ok:
            print(result.diagnosis)
    """

    def __init__(
        self,
        listener: DeviceListener,
        inference_client: InferenceClient,
        resolution_code: int = DEFAULT_RESOLUTION_CODE,
        settle_delay: float = 0.5,
        connect_timeout: Optional[float] = 5.0,
        receive_timeout: Optional[float] = 10.0,
        healthy_class: str = "no",
    ) -> None:
        self.listener = listener
        self.inference_client = inference_client
        self.resolution_code = resolution_code
        self.settle_delay = settle_delay
        self.connect_timeout = connect_timeout
        self.receive_timeout = receive_timeout
        self.healthy_class = healthy_class

        self.metrics = CoordinatorMetrics()

        self._request: Optional[CaptureRequest] = None
        self._last_summary: Optional[Dict[str, Any]] = None

    @property
    def status(self) -> CaptureStatus:
        """Status of the in-flight request, or IDLE."""
        if self._request is None:
            return CaptureStatus.IDLE
        return self._request.status

    @property
    def busy(self) -> bool:
        return self._request is not None

    @property
    def last_summary(self) -> Optional[Dict[str, Any]]:
        """JSON summary of the most recent capture (no image bytes)."""
        return self._last_summary

    async def capture(self) -> CaptureResult:
        """
        Run one capture request.

        Returns:
            CaptureResult; check ``ok`` and ``failure`` for the outcome
        """
        if self._request is not None:
            logger.warning(f"Capture rejected: request in {self._request.status.value}")
            rejected = CaptureRequest()
            rejected.fail(FailureKind.BUSY, "A capture is already in flight")
            return CaptureResult.from_request(rejected)

        request = CaptureRequest()
        self._request = request
        self.metrics.captures_started += 1
        logger.info("Capture requested")

        try:
            result = await self._run(request)
        finally:
            self._request = None

        self.metrics.record(result)
        # Summary only; the frame belongs to the caller once returned
        self._last_summary = result.to_dict()

        if result.ok:
            logger.info(f"Capture succeeded in {result.elapsed:.2f}s: {result.diagnosis}")
        else:
            logger.warning(
                f"Capture failed ({result.failure.kind.value}): {result.failure.reason}"
            )
        return result

    async def _run(self, request: CaptureRequest) -> CaptureResult:
        session: Optional[DeviceSession] = None
        frame: Optional[Frame] = None

        try:
            session = await self.listener.open_session(timeout=self.connect_timeout)
            frame = await self._acquire_frame(session, request)
        except DeviceConnectionError as e:
            request.fail(FailureKind.CONNECTION_ERROR, str(e))
            if session is not None:
                await session.close()
        except CommandWriteError as e:
            request.fail(FailureKind.WRITE_ERROR, str(e))
        except asyncio.TimeoutError:
            request.fail(
                FailureKind.TIMEOUT,
                f"No complete frame within {self.receive_timeout}s",
            )
            if session is not None:
                await session.close()

        if frame is None:
            return CaptureResult.from_request(request)

        try:
            response = await self.inference_client.classify(frame.payload)
        except InferenceError as e:
            request.fail(FailureKind.INFERENCE_ERROR, str(e))
            return CaptureResult.from_request(request, frame=frame)

        diagnosis = Diagnosis.from_response(response, healthy_class=self.healthy_class)
        return CaptureResult.from_request(
            request,
            frame=frame,
            inference=response,
            diagnosis=diagnosis,
        )

    async def _acquire_frame(
        self,
        session: DeviceSession,
        request: CaptureRequest,
    ) -> Optional[Frame]:
        """Send the command sequence and wait for the frame."""
        session.begin_receive()
        try:
            await session.send_command(SetResolution(self.resolution_code))
            request.advance(CaptureStatus.RESOLUTION_SENT)

            await asyncio.sleep(self.settle_delay)

            await session.send_command(Capture())
            request.advance(CaptureStatus.CAPTURE_SENT)

            return await self._receive_frame(session, request)
        finally:
            session.end_receive()

    async def _receive_frame(
        self,
        session: DeviceSession,
        request: CaptureRequest,
    ) -> Optional[Frame]:
        """Consume outcomes until the frame completes, is corrupt, or times out."""
        loop = asyncio.get_running_loop()
        deadline = None
        if self.receive_timeout is not None:
            deadline = loop.time() + self.receive_timeout

        while True:
            remaining = None
            if deadline is not None:
                remaining = max(0.0, deadline - loop.time())

            outcome = await session.next_outcome(timeout=remaining)

            if request.status is CaptureStatus.CAPTURE_SENT:
                request.advance(CaptureStatus.RECEIVING)

            if outcome.kind is OutcomeKind.COMPLETE:
                request.advance(CaptureStatus.FRAME_COMPLETE)
                return outcome.frame

            if outcome.kind is OutcomeKind.CORRUPT:
                request.fail(FailureKind.CORRUPT, outcome.reason)
                return None

            logger.debug(f"Receiving: {session.assembler.buffered} bytes buffered")
