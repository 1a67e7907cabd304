"""
Audio Capture Module

Microphone capture, sample accumulation and loudness-based cough detection.
"""

from azscan.capture.audio_capture import (
    AmplitudeUpdate,
    CaptureConfig,
    CaptureController,
    CaptureFinished,
    CaptureState,
    FinalizedRecording,
    NoiseSuppressor,
    StopReason,
)
from azscan.capture.audio_utils import AudioChunk, AudioSegment, SampleBuffer, finalize
from azscan.capture.cough_detector import CoughDetector, detect

__all__ = [
    "AmplitudeUpdate",
    "AudioChunk",
    "AudioSegment",
    "CaptureConfig",
    "CaptureController",
    "CaptureFinished",
    "CaptureState",
    "CoughDetector",
    "FinalizedRecording",
    "NoiseSuppressor",
    "SampleBuffer",
    "StopReason",
    "detect",
    "finalize",
]
