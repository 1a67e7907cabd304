"""
Audio Capture

Microphone session control with a background read loop.

A ``CaptureController`` owns one recording session at a time. The read loop
runs on a worker thread and talks to its owner only through an event queue:
amplitude updates in capture order, then exactly one ``CaptureFinished``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator
import logging
import queue
import threading

import numpy as np

from azscan.capture.audio_utils import (
    CHANNELS,
    MAX_DURATION_SECONDS,
    SAMPLE_RATE,
    SampleBuffer,
    peak_amplitude,
)
from azscan.capture.cough_detector import DEFAULT_THRESHOLD, CoughDetector
from azscan.exceptions import DeviceUnavailable, PermissionDenied

logger = logging.getLogger(__name__)


@dataclass
class CaptureConfig:
    """Configuration for audio capture."""

    sample_rate: int = SAMPLE_RATE
    channels: int = CHANNELS
    chunk_duration_ms: int = 100
    max_duration_seconds: float = MAX_DURATION_SECONDS
    cough_threshold: float = DEFAULT_THRESHOLD
    noise_suppression: bool = True
    device: int | str | None = None  # None = default device
    join_timeout_seconds: float = 2.0

    @property
    def chunk_samples(self) -> int:
        """Number of samples per device read."""
        return int(self.sample_rate * self.chunk_duration_ms / 1000)

    @property
    def capacity(self) -> int:
        """Maximum number of samples in one recording."""
        return int(self.sample_rate * self.max_duration_seconds)


class CaptureState(Enum):
    IDLE = "idle"
    RECORDING = "recording"
    FINALIZING = "finalizing"


class StopReason(str, Enum):
    MANUAL = "manual"
    BUFFER_FULL = "buffer_full"
    DEVICE_ERROR = "device_error"


@dataclass(frozen=True)
class FinalizedRecording:
    """Fixed-length PCM16 bytes of one session plus what was detected."""

    audio_bytes: bytes
    cough_detected: bool
    sample_count: int
    sample_rate: int
    stop_reason: StopReason

    @property
    def duration_seconds(self) -> float:
        """Duration actually captured, before padding."""
        return self.sample_count / self.sample_rate


@dataclass(frozen=True)
class AmplitudeUpdate:
    amplitude: float
    sequence_number: int
    cough_detected: bool


@dataclass(frozen=True)
class CaptureFinished:
    recording: FinalizedRecording


CaptureEvent = AmplitudeUpdate | CaptureFinished


class NoiseSuppressor(ABC):
    """Optional platform noise suppression applied to each chunk."""

    def is_available(self) -> bool:
        return True

    @abstractmethod
    def process(self, samples: np.ndarray) -> np.ndarray:
        """Return a suppressed copy of an int16 chunk."""
        ...


def _open_input_stream(config: CaptureConfig):
    """Open a blocking-mode input stream on the configured device."""
    import sounddevice as sd

    return sd.InputStream(
        samplerate=config.sample_rate,
        channels=config.channels,
        dtype="int16",
        blocksize=config.chunk_samples,
        device=config.device,
    )


class CaptureController:
    """Records one microphone session at a time."""

    def __init__(
        self,
        config: CaptureConfig | None = None,
        permission_check: Callable[[], bool] | None = None,
        noise_suppressor: NoiseSuppressor | None = None,
        on_event: Callable[[CaptureEvent], None] | None = None,
    ):
        """Initialize the controller.

        Args:
            config: Capture settings.
            permission_check: Returns whether microphone access is granted.
            noise_suppressor: Optional per-chunk suppression provider.
            on_event: Called by ``dispatch_events`` on the caller's thread.
        """
        self.config = config or CaptureConfig()
        self._permission_check = permission_check or (lambda: True)
        self._noise_suppressor = noise_suppressor
        self._on_event = on_event

        self._state = CaptureState.IDLE
        self._state_lock = threading.Lock()
        self._stream_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._finished = threading.Event()

        self._stream = None
        self._thread: threading.Thread | None = None
        self._events: queue.Queue[CaptureEvent] = queue.Queue()
        self._buffer = SampleBuffer(self.config.capacity)
        self._detector = CoughDetector(self.config.cough_threshold)
        self._suppress = False
        self._amplitude = 0.0
        self._recording: FinalizedRecording | None = None

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state == CaptureState.RECORDING

    @property
    def amplitude(self) -> float:
        """Most recent normalized peak."""
        return self._amplitude

    @property
    def cough_detected(self) -> bool:
        return self._detector.detected

    @property
    def last_recording(self) -> FinalizedRecording | None:
        return self._recording

    def start(self) -> None:
        """Open the microphone and begin the background read loop."""
        with self._state_lock:
            if self._state != CaptureState.IDLE:
                logger.warning("Recording already in progress")
                return

            if not self._permission_check():
                raise PermissionDenied("Microphone permission has not been granted")

            self._buffer.clear()
            self._detector.reset()
            self._stop_event.clear()
            self._finished.clear()
            self._events = queue.Queue()
            self._amplitude = 0.0
            self._recording = None

            stream = None
            try:
                stream = _open_input_stream(self.config)
                stream.start()
            except PermissionError as e:
                self._close_stream(stream)
                raise PermissionDenied(f"Microphone access denied: {e}") from e
            except Exception as e:
                self._close_stream(stream)
                raise DeviceUnavailable(
                    f"Audio input device could not be initialized: {e}"
                ) from e

            self._stream = stream
            self._suppress = self._enable_noise_suppression()
            self._state = CaptureState.RECORDING

            self._thread = threading.Thread(
                target=self._read_loop,
                args=(stream,),
                name="AudioCaptureThread",
                daemon=True,
            )
            self._thread.start()

        logger.info(
            "Recording started: %d Hz, %d samples/chunk, capacity %d samples",
            self.config.sample_rate,
            self.config.chunk_samples,
            self.config.capacity,
        )

    def stop(self) -> FinalizedRecording | None:
        """Stop recording and return the finalized session.

        If the session already stopped on its own, its recording is
        returned. Returns None when nothing was ever recorded.
        """
        if self._state == CaptureState.IDLE:
            if self._recording is None:
                logger.warning("No recording in progress")
            return self._recording

        self._stop_event.set()
        self._release_device()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.config.join_timeout_seconds)
            if thread.is_alive():
                logger.warning("Audio read thread did not exit within %.1fs",
                               self.config.join_timeout_seconds)

        reason = StopReason.BUFFER_FULL if self._buffer.is_full else StopReason.MANUAL
        recording = self._finalize(reason)
        if recording is None:
            # Read loop is finalizing concurrently
            self._finished.wait(timeout=self.config.join_timeout_seconds)
            recording = self._recording
        return recording

    def wait(self, timeout: float | None = None) -> FinalizedRecording | None:
        """Block until the current session has finalized."""
        self._finished.wait(timeout)
        return self._recording

    def dispatch_events(self) -> list[CaptureEvent]:
        """Drain pending events, passing each to ``on_event``."""
        events: list[CaptureEvent] = []
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                break
            events.append(event)
            if self._on_event is not None:
                self._on_event(event)
        return events

    def stream(self, poll_interval: float = 0.1) -> Iterator[CaptureEvent]:
        """Yield events until the session finishes."""
        events = self._events
        while True:
            try:
                event = events.get(timeout=poll_interval)
            except queue.Empty:
                if self._state == CaptureState.IDLE and events.empty():
                    return
                continue
            yield event
            if isinstance(event, CaptureFinished):
                return

    def _read_loop(self, stream) -> None:
        """Read chunks until stopped, the buffer fills, or the device fails."""
        sequence_number = 0
        reason = None

        while not self._stop_event.is_set() and not self._buffer.is_full:
            try:
                data, overflowed = stream.read(self.config.chunk_samples)
            except Exception as e:
                if self._stop_event.is_set():
                    break
                logger.error("Audio read failed: %s", e)
                reason = StopReason.DEVICE_ERROR
                break

            if self._stop_event.is_set():
                break
            if overflowed:
                logger.debug("Input overflow on chunk %d", sequence_number)

            samples = self._suppress_noise(self._to_mono(data))
            if len(samples) == 0:
                continue

            self._buffer.append(samples)
            peak = peak_amplitude(samples)
            self._amplitude = peak
            detected = self._detector.update(peak)
            self._events.put(AmplitudeUpdate(peak, sequence_number, detected))
            sequence_number += 1

        if self._stop_event.is_set():
            # stop() owns teardown and finalization
            return

        if reason is None:
            reason = StopReason.BUFFER_FULL
            logger.info("Maximum duration reached, stopping automatically")
        self._release_device()
        self._finalize(reason)

    def _finalize(self, reason: StopReason) -> FinalizedRecording | None:
        """Produce the session's recording. Runs at most once per session."""
        with self._state_lock:
            if self._state != CaptureState.RECORDING:
                return self._recording
            self._state = CaptureState.FINALIZING

        recording = FinalizedRecording(
            audio_bytes=self._buffer.finalize(),
            cough_detected=self._detector.detected,
            sample_count=len(self._buffer),
            sample_rate=self.config.sample_rate,
            stop_reason=reason,
        )
        self._recording = recording
        self._amplitude = 0.0
        self._events.put(CaptureFinished(recording))

        with self._state_lock:
            self._state = CaptureState.IDLE
        self._finished.set()

        logger.info(
            "Recording finalized (%s): %.2fs captured, cough detected: %s",
            reason.value,
            recording.duration_seconds,
            recording.cough_detected,
        )
        return recording

    def _release_device(self) -> None:
        with self._stream_lock:
            stream, self._stream = self._stream, None
        self._close_stream(stream)

    @staticmethod
    def _close_stream(stream) -> None:
        """Stop and close a stream, logging any teardown error."""
        if stream is None:
            return
        try:
            stream.stop()
        except Exception as e:
            logger.warning("Error stopping audio stream: %s", e)
        try:
            stream.close()
        except Exception as e:
            logger.warning("Error closing audio stream: %s", e)

    def _enable_noise_suppression(self) -> bool:
        if not self.config.noise_suppression:
            return False
        if self._noise_suppressor is None:
            logger.debug("Noise suppression not available on this platform")
            return False
        try:
            available = self._noise_suppressor.is_available()
        except Exception as e:
            logger.warning("Noise suppressor check failed: %s", e)
            return False
        if not available:
            logger.debug("Noise suppressor reports unavailable")
        return available

    def _suppress_noise(self, samples: np.ndarray) -> np.ndarray:
        if not self._suppress:
            return samples
        try:
            return np.asarray(self._noise_suppressor.process(samples), dtype=np.int16)
        except Exception as e:
            logger.warning("Noise suppression failed, continuing without it: %s", e)
            self._suppress = False
            return samples

    @staticmethod
    def _to_mono(data: np.ndarray) -> np.ndarray:
        data = np.asarray(data)
        if data.ndim > 1 and data.shape[1] > 1:
            return np.mean(data, axis=1).astype(np.int16)
        return data.reshape(-1).astype(np.int16, copy=False)

    def __enter__(self) -> "CaptureController":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    @staticmethod
    def list_devices() -> list[dict]:
        """List available audio input devices."""
        import sounddevice as sd

        devices = sd.query_devices()
        input_devices = []

        for i, device in enumerate(devices):
            if device["max_input_channels"] > 0:
                input_devices.append(
                    {
                        "index": i,
                        "name": device["name"],
                        "channels": device["max_input_channels"],
                        "sample_rate": device["default_samplerate"],
                    }
                )

        return input_devices
