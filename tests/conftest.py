"""
Pytest Configuration and Shared Fixtures

Copyright (c) 2024 Cleansheet LLC
License: CC BY 4.0
"""

import threading
from pathlib import Path
from typing import Any, Callable
from unittest.mock import MagicMock

import numpy as np
import pytest

from azscan.capture.audio_capture import CaptureConfig, FinalizedRecording, StopReason


# =============================================================================
# AUDIO FIXTURES
# =============================================================================


class FakeInputStream:
    """Stands in for ``sounddevice.InputStream`` in blocking read mode.

    Serves the given chunks in order, then blocks until the stream is
    stopped or closed, like a device waiting for more input.
    """

    def __init__(self, chunks: list[np.ndarray], fail_when_empty: bool = False):
        self._chunks = [np.asarray(c, dtype=np.int16).reshape(-1, 1) for c in chunks]
        self._fail_when_empty = fail_when_empty
        self.released = threading.Event()
        self.started = False
        self.stop_calls = 0
        self.close_calls = 0

    def start(self) -> None:
        self.started = True

    def read(self, frames: int):
        if self._chunks:
            return self._chunks.pop(0), False
        if not self._fail_when_empty:
            self.released.wait(timeout=5.0)
        raise RuntimeError("Stream is stopped")

    def stop(self) -> None:
        self.stop_calls += 1
        self.released.set()

    def close(self) -> None:
        self.close_calls += 1
        self.released.set()


@pytest.fixture
def fake_stream() -> type[FakeInputStream]:
    """The fake input stream class."""
    return FakeInputStream


@pytest.fixture
def make_chunk() -> Callable[[int, int], np.ndarray]:
    """Build a constant-valued int16 chunk."""

    def _make(value: int, size: int = 100) -> np.ndarray:
        return np.full(size, value, dtype=np.int16)

    return _make


@pytest.fixture
def sample_rate() -> int:
    """Standard sample rate for tests."""
    return 16000


@pytest.fixture
def small_capture_config() -> CaptureConfig:
    """1000-sample capacity read in 100-sample chunks."""
    return CaptureConfig(
        sample_rate=1000,
        chunk_duration_ms=100,
        max_duration_seconds=1.0,
        join_timeout_seconds=5.0,
    )


@pytest.fixture
def quiet_chunk(make_chunk) -> np.ndarray:
    """Peak just under the 0.1 threshold (3276 / 32768)."""
    return make_chunk(3276)


@pytest.fixture
def loud_chunk(make_chunk) -> np.ndarray:
    """Peak of 0.5."""
    return make_chunk(16384)


@pytest.fixture
def sample_audio_with_cough(sample_rate: int) -> np.ndarray:
    """Half a second of silence, a loud burst, then silence again."""
    audio = np.zeros(sample_rate * 2, dtype=np.float32)
    t = np.linspace(0, 0.2, int(sample_rate * 0.2))
    audio[sample_rate // 2 : sample_rate // 2 + len(t)] = 0.6 * np.sin(2 * np.pi * 300 * t)
    return audio


@pytest.fixture
def sample_audio_quiet(sample_rate: int) -> np.ndarray:
    """Low-amplitude noise only."""
    rng = np.random.default_rng(0)
    return np.clip(rng.normal(0, 0.005, sample_rate * 2), -0.05, 0.05).astype(np.float32)


# =============================================================================
# RECORDING FIXTURES
# =============================================================================


@pytest.fixture
def cough_recording() -> FinalizedRecording:
    """A finalized recording in which a cough was detected."""
    return FinalizedRecording(
        audio_bytes=b"\x00\x01" * 320000,
        cough_detected=True,
        sample_count=48000,
        sample_rate=16000,
        stop_reason=StopReason.MANUAL,
    )


@pytest.fixture
def silent_recording() -> FinalizedRecording:
    """A finalized recording with no cough."""
    return FinalizedRecording(
        audio_bytes=bytes(640000),
        cough_detected=False,
        sample_count=320000,
        sample_rate=16000,
        stop_reason=StopReason.BUFFER_FULL,
    )


# =============================================================================
# HTTP FIXTURES
# =============================================================================


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Build a mock ``requests.Response``."""

    def _make(status_code: int = 200, json_data: Any = None, content: bytes | None = None):
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 300
        if content is None:
            content = b"{}" if json_data is not None else b""
        response.content = content
        response.json.return_value = json_data
        return response

    return _make


# =============================================================================
# CONFIGURATION FIXTURES
# =============================================================================


@pytest.fixture
def sample_config_dict() -> dict[str, Any]:
    """Sample pipeline configuration dictionary."""
    return {
        "name": "test-pipeline",
        "version": "1.0.0",
        "capture": {
            "sample_rate": 16000,
            "max_duration_seconds": 10,
            "cough_threshold": 0.2,
        },
        "prediction": {
            "endpoint_url": "https://example.org/api3/prever",
            "timeout_seconds": 15.0,
        },
        "logging": {
            "level": "DEBUG",
        },
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, sample_config_dict: dict) -> Path:
    """Create a temporary config file."""
    import yaml

    config_path = tmp_path / "config.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config_dict, f)
    return config_path
