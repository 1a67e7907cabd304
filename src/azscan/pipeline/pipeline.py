"""
Cough Screening Pipeline

End-to-end orchestration of capture, cough gating and remote prediction.
"""

import logging
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from azscan.capture.audio_capture import (
    CaptureConfig,
    CaptureController,
    FinalizedRecording,
    NoiseSuppressor,
    StopReason,
)
from azscan.capture.audio_utils import AudioSegment, SampleBuffer
from azscan.capture.cough_detector import CoughDetector
from azscan.prediction.prediction_client import PredictionClient, PredictionClientConfig
from azscan.prediction.prediction_types import PredictionFailure, PredictionResult
from azscan.pipeline.config import PipelineConfig, load_config

logger = logging.getLogger(__name__)


class ScreeningStatus(str, Enum):
    ANALYZED = "analyzed"
    NO_COUGH = "no_cough"
    FAILED = "failed"


@dataclass(frozen=True)
class ScreeningOutcome:
    """Terminal result of screening one recording."""

    status: ScreeningStatus
    recording: FinalizedRecording
    prediction: PredictionResult | None = None

    @property
    def cough_detected(self) -> bool:
        return self.status != ScreeningStatus.NO_COUGH

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (audio bytes excluded)."""
        return {
            "status": self.status.value,
            "cough_detected": self.cough_detected,
            "duration_seconds": round(self.recording.duration_seconds, 3),
            "stop_reason": self.recording.stop_reason.value,
            "prediction": self.prediction.to_dict() if self.prediction else None,
        }


class Pipeline:
    """Record a cough, gate on loudness, and classify it remotely."""

    def __init__(
        self,
        config: PipelineConfig,
        permission_check: Callable[[], bool] | None = None,
        noise_suppressor: NoiseSuppressor | None = None,
    ):
        """Initialize pipeline with configuration."""
        self.config = config
        self._permission_check = permission_check
        self._noise_suppressor = noise_suppressor

        # Initialize components (lazy)
        self._capture: CaptureController | None = None
        self._predictor: PredictionClient | None = None

    @classmethod
    def from_config(cls, config_path: str | Path) -> "Pipeline":
        """Create pipeline from config file."""
        config = load_config(config_path)
        return cls(config)

    @property
    def capture_config(self) -> CaptureConfig:
        cap = self.config.capture
        return CaptureConfig(
            sample_rate=cap.sample_rate,
            channels=cap.channels,
            chunk_duration_ms=cap.chunk_duration_ms,
            max_duration_seconds=cap.max_duration_seconds,
            cough_threshold=cap.cough_threshold,
            noise_suppression=cap.noise_suppression,
            device=cap.device,
        )

    @property
    def capture(self) -> CaptureController:
        """Get or create the capture controller."""
        if self._capture is None:
            self._capture = CaptureController(
                self.capture_config,
                permission_check=self._permission_check,
                noise_suppressor=self._noise_suppressor,
            )
        return self._capture

    @property
    def predictor(self) -> PredictionClient:
        """Get or create the prediction client."""
        if self._predictor is None:
            self._predictor = PredictionClient(
                PredictionClientConfig(
                    endpoint_url=self.config.prediction.endpoint_url,
                    timeout_seconds=self.config.prediction.timeout_seconds,
                )
            )
        return self._predictor

    def start_recording(self) -> None:
        """Begin a capture session. Raises ``CaptureError`` on failure."""
        self.capture.start()

    def stop_recording(self) -> FinalizedRecording | None:
        """End the capture session and return its recording."""
        return self.capture.stop()

    def analyze(self, recording: FinalizedRecording) -> ScreeningOutcome:
        """Classify a recording if a cough was detected in it."""
        if not recording.cough_detected:
            logger.info("No cough detected, skipping analysis")
            return ScreeningOutcome(ScreeningStatus.NO_COUGH, recording)

        return self._outcome(recording, self.predictor.predict(recording.audio_bytes))

    def analyze_async(self, recording: FinalizedRecording) -> "Future[ScreeningOutcome]":
        """Non-blocking ``analyze``. No request is made when no cough was heard."""
        outcome: Future[ScreeningOutcome] = Future()

        if not recording.cough_detected:
            logger.info("No cough detected, skipping analysis")
            outcome.set_result(ScreeningOutcome(ScreeningStatus.NO_COUGH, recording))
            return outcome

        def _resolve(request: Future) -> None:
            try:
                outcome.set_result(self._outcome(recording, request.result()))
            except Exception as e:
                outcome.set_exception(e)

        self.predictor.predict_async(recording.audio_bytes).add_done_callback(_resolve)
        return outcome

    def process_segment(self, audio: AudioSegment) -> ScreeningOutcome:
        """Screen pre-recorded audio through the same detector and finalizer."""
        return self.analyze(self.recording_from_segment(audio))

    def process_file(self, filepath: str | Path) -> ScreeningOutcome:
        """Screen an audio file."""
        return self.process_segment(AudioSegment.from_file(filepath))

    def recording_from_segment(self, audio: AudioSegment) -> FinalizedRecording:
        """Run a segment chunk by chunk as if it came from the microphone."""
        cap = self.capture_config
        audio = audio.resample(cap.sample_rate)

        buffer = SampleBuffer(cap.capacity)
        detector = CoughDetector(cap.cough_threshold)
        for chunk in audio.chunks(cap.chunk_samples):
            if buffer.is_full:
                break
            buffer.append(chunk.data)
            detector.update(chunk.peak)

        return FinalizedRecording(
            audio_bytes=buffer.finalize(),
            cough_detected=detector.detected,
            sample_count=len(buffer),
            sample_rate=cap.sample_rate,
            stop_reason=StopReason.BUFFER_FULL if buffer.is_full else StopReason.MANUAL,
        )

    @staticmethod
    def _outcome(
        recording: FinalizedRecording,
        result: PredictionResult | PredictionFailure,
    ) -> ScreeningOutcome:
        if isinstance(result, PredictionFailure):
            logger.warning("Analysis failed (%s), reporting zero scores", result.reason)
            return ScreeningOutcome(
                ScreeningStatus.FAILED, recording, PredictionResult.zero()
            )
        return ScreeningOutcome(ScreeningStatus.ANALYZED, recording, result)

    def close(self) -> None:
        """Stop any active recording and release the HTTP client."""
        if self._capture is not None and self._capture.is_recording:
            self._capture.stop()
        if self._predictor is not None:
            self._predictor.close()
            self._predictor = None
