#!/usr/bin/env python3
"""
Fake Camera Module
==================

Standalone script that plays the camera module against a running
medscope-capture service.

This script:
    1. Connects to the device listener
    2. Waits for SetResolution / Capture commands
    3. Answers each Capture with the given JPEG, split into chunks
    4. Reports what it received on exit

Prerequisites:
    - medscope-capture must be running (python -m medscope_capture.main)
    - Trigger captures with: curl -X POST http://localhost:8001/capture

Usage:
    python scripts/fake_camera.py --image sample.jpg
    python scripts/fake_camera.py --host 127.0.0.1 --port 8080 --chunk-size 512
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from medscope_capture.device.simulator import CameraSimulator


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


# Minimal JPEG markers around filler, used when no image is given
PLACEHOLDER_IMAGE = b"\xff\xd8\xff\xe0" + bytes(2048) + b"\xff\xd9"


async def run_camera(
    host: str,
    port: int,
    image: bytes,
    chunk_size: int,
    chunk_delay: float,
) -> int:
    """
    Run the fake camera until the service drops the connection.

    Returns:
        Number of captures answered
    """
    logger.info("=" * 60)
    logger.info("Fake Camera Module")
    logger.info("=" * 60)
    logger.info(f"Listener: {host}:{port}")
    logger.info(f"Image size: {len(image)} bytes")
    logger.info(f"Chunk size: {chunk_size} bytes")
    logger.info("=" * 60)

    simulator = CameraSimulator(
        image=image,
        chunk_size=chunk_size,
        chunk_delay=chunk_delay,
    )

    await simulator.connect(host, port)
    try:
        await simulator.serve()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        await simulator.close()

    logger.info("=" * 60)
    logger.info("SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Resolution commands: {[hex(c) for c in simulator.resolution_codes]}")
    logger.info(f"Captures answered: {simulator.captures}")
    logger.info("=" * 60)

    return simulator.captures


def main():
    parser = argparse.ArgumentParser(
        description="Simulated camera module for medscope-capture"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Device listener host (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("MEDSCOPE_DEVICE_PORT", 8080)),
        help="Device listener port (default: 8080)",
    )
    parser.add_argument(
        "--image",
        type=Path,
        default=None,
        help="JPEG file to send (default: small placeholder)",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=1024,
        help="Bytes per write (default: 1024)",
    )
    parser.add_argument(
        "--chunk-delay",
        type=float,
        default=0.01,
        help="Seconds between chunks (default: 0.01)",
    )

    args = parser.parse_args()

    image = args.image.read_bytes() if args.image else PLACEHOLDER_IMAGE

    try:
        asyncio.run(run_camera(
            host=args.host,
            port=args.port,
            image=image,
            chunk_size=args.chunk_size,
            chunk_delay=args.chunk_delay,
        ))
    except ConnectionRefusedError:
        logger.error(f"No listener at {args.host}:{args.port}")
        sys.exit(1)


if __name__ == "__main__":
    main()
