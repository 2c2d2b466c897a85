"""
medscope-capture
================

Still-image capture from a networked embedded camera module.

The camera module connects to a TCP listener and speaks a small
command/response byte protocol: the host sends a resolution selector and a
capture command, and the module streams back one frame (8-byte header,
JPEG payload, 0xFF 0xBB terminator). The assembled image is forwarded to
an image classification service.

Components:
    - protocol: Terminator scan, frame assembly, command encoding
    - device: TCP listener and per-connection session
    - capture: Capture coordinator and tagged results
    - inference: Classification clients (HTTP and mock)
    - models: Pydantic models for capture state and inference responses

Example:
    from medscope_capture.capture import CaptureCoordinator
    from medscope_capture.device import DeviceListener
    from medscope_capture.inference import MockInferenceClient

    listener = DeviceListener(host="0.0.0.0", port=8080, max_expected_size=204800)
    await listener.start()

    coordinator = CaptureCoordinator(listener, MockInferenceClient())
    result = await coordinator.capture()
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
