"""
Pipeline Configuration

Configuration management for the cough screening pipeline.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from azscan.prediction.prediction_client import DEFAULT_ENDPOINT_URL


@dataclass
class CaptureConfig:
    """Audio capture configuration."""

    sample_rate: int = 16000
    channels: int = 1
    chunk_duration_ms: int = 100
    max_duration_seconds: float = 20.0
    cough_threshold: float = 0.1
    noise_suppression: bool = True
    device: int | str | None = None


@dataclass
class PredictionConfig:
    """Prediction service configuration."""

    endpoint_url: str = DEFAULT_ENDPOINT_URL
    timeout_seconds: float | None = None


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"


@dataclass
class PipelineConfig:
    """Complete pipeline configuration."""

    name: str = "azscan"
    version: str = "0.1.0"

    capture: CaptureConfig = field(default_factory=CaptureConfig)
    prediction: PredictionConfig = field(default_factory=PredictionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "PipelineConfig":
        """Create config from dictionary."""
        config = cls()
        if not data:
            return config

        if "name" in data:
            config.name = data["name"]
        if "version" in data:
            config.version = data["version"]

        # Capture config
        if "capture" in data:
            cap = data["capture"] or {}
            config.capture = CaptureConfig(
                sample_rate=cap.get("sample_rate", 16000),
                channels=cap.get("channels", 1),
                chunk_duration_ms=cap.get("chunk_duration_ms", 100),
                max_duration_seconds=cap.get("max_duration_seconds", 20.0),
                cough_threshold=cap.get("cough_threshold", 0.1),
                noise_suppression=cap.get("noise_suppression", True),
                device=cap.get("device"),
            )

        # Prediction config
        if "prediction" in data:
            pred = data["prediction"] or {}
            config.prediction = PredictionConfig(
                endpoint_url=pred.get("endpoint_url", DEFAULT_ENDPOINT_URL),
                timeout_seconds=pred.get("timeout_seconds"),
            )

        if "logging" in data:
            log = data["logging"] or {}
            config.logging = LoggingConfig(level=log.get("level", "WARNING"))

        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "name": self.name,
            "version": self.version,
            "capture": {
                "sample_rate": self.capture.sample_rate,
                "channels": self.capture.channels,
                "chunk_duration_ms": self.capture.chunk_duration_ms,
                "max_duration_seconds": self.capture.max_duration_seconds,
                "cough_threshold": self.capture.cough_threshold,
                "noise_suppression": self.capture.noise_suppression,
                "device": self.capture.device,
            },
            "prediction": {
                "endpoint_url": self.prediction.endpoint_url,
                "timeout_seconds": self.prediction.timeout_seconds,
            },
            "logging": {
                "level": self.logging.level,
            },
        }

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        return yaml.safe_dump(self.to_dict(), sort_keys=False)


def load_config(config_path: str | Path) -> PipelineConfig:
    """Load configuration from YAML file."""
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    return PipelineConfig.from_dict(data)
