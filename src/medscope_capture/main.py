"""
medscope-capture Main Application
=================================

FastAPI entry point for the camera capture service.

The camera module dials in to the device listener over raw TCP; HTTP
clients trigger captures and read status here.

Endpoints:
    GET  /          - Service information
    GET  /health    - Liveness probe (is process alive?)
    GET  /ready     - Readiness probe (camera module connected?)
    GET  /status    - Device listener status
    GET  /metrics   - Listener, session, coordinator and inference counters
    POST /capture   - Run one capture and return the result
    GET  /capture/last - Most recent capture result
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Union

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from medscope_capture.capture import CaptureCoordinator
from medscope_capture.config import Settings, settings
from medscope_capture.device import DeviceListener
from medscope_capture.inference import HttpInferenceClient, MockInferenceClient
from medscope_capture.models.capture import FailureKind


logger = logging.getLogger(__name__)


FAILURE_STATUS_CODES = {
    FailureKind.BUSY: 409,
    FailureKind.CORRUPT: 422,
    FailureKind.WRITE_ERROR: 502,
    FailureKind.INFERENCE_ERROR: 502,
    FailureKind.CONNECTION_ERROR: 503,
    FailureKind.TIMEOUT: 504,
}


# =============================================================================
# Component Factories
# =============================================================================

def create_inference_client(
    config: Settings,
) -> Union[MockInferenceClient, HttpInferenceClient]:
    """
    Create inference client based on config.

    Fails fast if the http backend is requested without an API key.
    """
    backend = config.inference.backend

    if backend == "mock":
        logger.info("Using MockInferenceClient")
        return MockInferenceClient()

    elif backend == "http":
        if not config.inference.api_key:
            raise RuntimeError(
                "HTTP inference backend requested but no API key configured. "
                "Set MEDSCOPE_API_KEY or inference.api_key."
            )
        return HttpInferenceClient(
            base_url=config.inference.base_url,
            model_id=config.inference.model_id,
            api_key=config.inference.api_key,
            timeout=config.inference.timeout_seconds,
        )

    else:
        raise ValueError(f"Unknown inference backend: {backend}")


def create_listener(config: Settings) -> DeviceListener:
    return DeviceListener(
        host=config.device.host,
        port=config.device.port,
        max_expected_size=config.protocol.max_expected_size,
        read_size=config.device.read_size,
        write_timeout=config.device.write_timeout_seconds,
    )


def create_coordinator(
    config: Settings,
    listener: DeviceListener,
) -> CaptureCoordinator:
    return CaptureCoordinator(
        listener=listener,
        inference_client=create_inference_client(config),
        resolution_code=config.protocol.resolution_code,
        settle_delay=config.protocol.settle_delay_seconds,
        connect_timeout=config.device.connect_timeout_seconds,
        receive_timeout=config.device.receive_timeout_seconds,
        healthy_class=config.inference.healthy_class,
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the device listener; stop it on shutdown."""
    logger.info(f"Starting {settings.service.name} {settings.service.version}")

    listener = create_listener(settings)
    coordinator = create_coordinator(settings, listener)

    await listener.start()

    app.state.listener = listener
    app.state.coordinator = coordinator
    app.state.started_at = time.time()

    logger.info(
        f"Receive timeout: {settings.device.receive_timeout_seconds}s, "
        f"settle delay: {settings.protocol.settle_delay_seconds}s, "
        f"inference backend: {settings.inference.backend}"
    )

    yield

    logger.info("Shutting down gracefully...")
    await listener.stop()
    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="medscope-capture",
    description="Still capture from a networked camera module with image classification",
    version=settings.service.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": settings.service.name,
        "version": settings.service.version,
        "status": "running",
        "inference_backend": settings.inference.backend,
    })


@app.get("/health")
async def health(request: Request) -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - request.app.state.started_at, 1),
    })


@app.get("/ready")
async def ready(request: Request) -> JSONResponse:
    """
    Readiness probe - can a capture be taken right now?

    Returns 200 if a camera module is connected, 503 otherwise.
    """
    listener: DeviceListener = request.app.state.listener
    coordinator: CaptureCoordinator = request.app.state.coordinator

    body = {
        "device_connected": listener.session is not None,
        "capture_status": coordinator.status.value,
    }

    if listener.session is not None:
        return JSONResponse({"status": "ready", **body})
    return JSONResponse({"status": "not_ready", **body}, status_code=503)


@app.get("/status")
async def status(request: Request) -> JSONResponse:
    """Device listener status."""
    listener: DeviceListener = request.app.state.listener
    return JSONResponse(listener.status())


@app.get("/metrics")
async def metrics(request: Request) -> JSONResponse:
    """Detailed metrics for observability."""
    listener: DeviceListener = request.app.state.listener
    coordinator: CaptureCoordinator = request.app.state.coordinator

    session = listener.session
    session_metrics = session.metrics.to_dict() if session is not None else {}

    return JSONResponse({
        "uptime_seconds": round(time.time() - request.app.state.started_at, 1),
        "capture_status": coordinator.status.value,
        "listener": listener.metrics.to_dict(),
        "session": session_metrics,
        "coordinator": coordinator.metrics.to_dict(),
        "inference": coordinator.inference_client.get_metrics(),
    })


@app.post("/capture")
async def capture(request: Request) -> JSONResponse:
    """Run one capture. Failures map to non-2xx status codes."""
    coordinator: CaptureCoordinator = request.app.state.coordinator

    result = await coordinator.capture()

    status_code = 200
    if not result.ok:
        status_code = FAILURE_STATUS_CODES.get(result.failure_kind, 500)

    return JSONResponse(result.to_dict(), status_code=status_code)


@app.get("/capture/last")
async def last_capture(request: Request) -> JSONResponse:
    """Most recent capture result."""
    coordinator: CaptureCoordinator = request.app.state.coordinator

    if coordinator.last_summary is None:
        return JSONResponse(
            {"error": "No capture taken yet"},
            status_code=404,
        )
    return JSONResponse(coordinator.last_summary)


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Console entry point."""
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "medscope_capture.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run()
