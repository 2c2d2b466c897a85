"""
Configuration Tests
===================

YAML loading, defaults and environment overrides.
"""

import pytest

from medscope_capture.config import Settings, load_config


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self):
        settings = Settings()

        assert settings.device.port == 8080
        assert settings.protocol.resolution_code == 0x18
        assert settings.protocol.settle_delay_seconds == 0.5
        assert settings.protocol.max_expected_size == 320 * 320 * 2
        assert settings.device.receive_timeout_seconds == 10.0
        assert settings.inference.backend == "mock"

    def test_yaml_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "device:\n"
            "  port: 9090\n"
            "  receive_timeout_seconds: null\n"
            "protocol:\n"
            "  image_width: 640\n"
            "  image_height: 480\n"
            "  resolution_code: 0x07\n"
        )

        settings = load_config(str(path))

        assert settings.device.port == 9090
        assert settings.device.receive_timeout_seconds is None
        assert settings.protocol.max_expected_size == 640 * 480 * 2
        assert settings.protocol.resolution_code == 7

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("device:\n  port: 9090\n")
        monkeypatch.setenv("MEDSCOPE_DEVICE_PORT", "7000")
        monkeypatch.setenv("MEDSCOPE_RESOLUTION_CODE", "0x20")
        monkeypatch.setenv("MEDSCOPE_RECEIVE_TIMEOUT", "none")
        monkeypatch.setenv("MEDSCOPE_INFERENCE_BACKEND", "http")
        monkeypatch.setenv("MEDSCOPE_API_KEY", "abc")

        settings = load_config(str(path))

        assert settings.device.port == 7000
        assert settings.protocol.resolution_code == 0x20
        assert settings.device.receive_timeout_seconds is None
        assert settings.inference.backend == "http"
        assert settings.inference.api_key == "abc"

    def test_port_env_wins_for_server(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PORT", "9999")
        monkeypatch.setenv("MEDSCOPE_SERVER_PORT", "1234")

        settings = load_config(str(tmp_path / "missing.yaml"))

        assert settings.server.port == 9999

    def test_invalid_resolution_code_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("protocol:\n  resolution_code: 300\n")

        with pytest.raises(Exception):
            load_config(str(path))

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "capture.yaml"
        path.write_text("protocol:\n  settle_delay_seconds: 0.25\n")
        monkeypatch.setenv("MEDSCOPE_CONFIG", str(path))

        settings = load_config()

        assert settings.protocol.settle_delay_seconds == 0.25
