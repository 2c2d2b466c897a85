"""
medscope-capture Configuration
==============================

This module handles configuration loading for the capture service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. YAML file ($MEDSCOPE_CONFIG, else ./config.yaml)
    3. Default values (lowest priority)

Environment Variable Mapping:
    MEDSCOPE_DEVICE_HOST        -> device.host
    MEDSCOPE_DEVICE_PORT        -> device.port
    MEDSCOPE_CONNECT_TIMEOUT    -> device.connect_timeout_seconds
    MEDSCOPE_RECEIVE_TIMEOUT    -> device.receive_timeout_seconds ("none" disables)
    MEDSCOPE_SETTLE_DELAY       -> protocol.settle_delay_seconds
    MEDSCOPE_RESOLUTION_CODE    -> protocol.resolution_code (decimal or 0x..)
    MEDSCOPE_INFERENCE_BACKEND  -> inference.backend
    MEDSCOPE_INFERENCE_URL      -> inference.base_url
    MEDSCOPE_MODEL_ID           -> inference.model_id
    MEDSCOPE_API_KEY            -> inference.api_key
    MEDSCOPE_SERVER_PORT        -> server.port
    MEDSCOPE_LOG_LEVEL          -> logging.level
    PORT                        -> server.port

Example:
    from medscope_capture.config import settings

    print(settings.device.port)
    print(settings.protocol.max_expected_size)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="medscope-capture", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class DeviceConfig(BaseModel):
    """Camera module TCP listener configuration."""

    host: str = Field(default="0.0.0.0", description="Listener bind address")
    port: int = Field(default=8080, ge=0, le=65535, description="Listener bind port")
    read_size: int = Field(
        default=4096,
        ge=1,
        description="Maximum bytes per socket read",
    )
    connect_timeout_seconds: Optional[float] = Field(
        default=5.0,
        gt=0,
        description="Wait for the camera to connect before failing a capture",
    )
    write_timeout_seconds: Optional[float] = Field(
        default=5.0,
        gt=0,
        description="Drain timeout for command writes",
    )
    receive_timeout_seconds: Optional[float] = Field(
        default=10.0,
        gt=0,
        description="Time allowed from Capture to a complete frame (null = no limit)",
    )


class ProtocolConfig(BaseModel):
    """Capture protocol configuration."""

    image_width: int = Field(default=320, ge=1, description="Sensor width in pixels")
    image_height: int = Field(default=320, ge=1, description="Sensor height in pixels")
    resolution_code: int = Field(
        default=0x18,
        ge=0,
        le=0xFF,
        description="Selector byte sent with SetResolution",
    )
    settle_delay_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Delay between SetResolution and Capture",
    )

    @property
    def max_expected_size(self) -> int:
        """Buffer bound for one frame (2 bytes per pixel)."""
        return self.image_width * self.image_height * 2


class InferenceConfig(BaseModel):
    """Classification service configuration."""

    backend: str = Field(
        default="mock",
        description="Inference backend: 'mock' or 'http'",
    )
    base_url: str = Field(
        default="https://serverless.roboflow.com",
        description="Service root URL",
    )
    model_id: str = Field(
        default="pharyngitis-dataset/3",
        description="Model identifier",
    )
    api_key: str = Field(default="", description="API key (query parameter)")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Request timeout")
    healthy_class: str = Field(
        default="no",
        description="Class label reported as healthy",
    )


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8001, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for medscope-capture.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    device: DeviceConfig = Field(default_factory=DeviceConfig)
    protocol: ProtocolConfig = Field(default_factory=ProtocolConfig)
    inference: InferenceConfig = Field(default_factory=InferenceConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Args:
        config_path: Path to a YAML file. Defaults to $MEDSCOPE_CONFIG,
            then ./config.yaml. A missing file means defaults only.

    Returns:
        Settings: Loaded configuration
    """
    path = Path(config_path or os.environ.get("MEDSCOPE_CONFIG", "config.yaml"))

    config_data: dict = {}
    if path.is_file():
        logger.info(f"Loading config from: {path}")
        config_data = yaml.safe_load(path.read_text()) or {}
    else:
        logger.warning(f"Config file {path} not found, using defaults and environment")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _optional_float(value: str) -> Optional[float]:
    if value.strip().lower() in ("", "none", "null", "off"):
        return None
    return float(value)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Device settings
    if env_host := os.environ.get("MEDSCOPE_DEVICE_HOST"):
        config_data.setdefault("device", {})["host"] = env_host
    if env_port := os.environ.get("MEDSCOPE_DEVICE_PORT"):
        config_data.setdefault("device", {})["port"] = int(env_port)
    if env_connect := os.environ.get("MEDSCOPE_CONNECT_TIMEOUT"):
        config_data.setdefault("device", {})["connect_timeout_seconds"] = _optional_float(env_connect)
    if env_receive := os.environ.get("MEDSCOPE_RECEIVE_TIMEOUT"):
        config_data.setdefault("device", {})["receive_timeout_seconds"] = _optional_float(env_receive)

    # Protocol settings
    if env_settle := os.environ.get("MEDSCOPE_SETTLE_DELAY"):
        config_data.setdefault("protocol", {})["settle_delay_seconds"] = float(env_settle)
    if env_code := os.environ.get("MEDSCOPE_RESOLUTION_CODE"):
        config_data.setdefault("protocol", {})["resolution_code"] = int(env_code, 0)

    # Inference settings
    if env_backend := os.environ.get("MEDSCOPE_INFERENCE_BACKEND"):
        config_data.setdefault("inference", {})["backend"] = env_backend
    if env_url := os.environ.get("MEDSCOPE_INFERENCE_URL"):
        config_data.setdefault("inference", {})["base_url"] = env_url
    if env_model := os.environ.get("MEDSCOPE_MODEL_ID"):
        config_data.setdefault("inference", {})["model_id"] = env_model
    if env_key := os.environ.get("MEDSCOPE_API_KEY"):
        config_data.setdefault("inference", {})["api_key"] = env_key

    # Server settings (PORT wins for container platforms)
    if env_server_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_server_port)
    elif env_server_port := os.environ.get("MEDSCOPE_SERVER_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_server_port)

    # Logging settings
    if env_log := os.environ.get("MEDSCOPE_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


LOG_FORMATS = {
    "text": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    "json": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
}


def setup_logging(config: LoggingConfig) -> None:
    """Configure root logging from the logging section."""
    logging.basicConfig(
        level=getattr(logging, config.level.upper(), logging.INFO),
        format=LOG_FORMATS.get(config.format, LOG_FORMATS["text"]),
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


settings = load_config()
setup_logging(settings.logging)
