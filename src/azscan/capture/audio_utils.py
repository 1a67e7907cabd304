"""
Audio Utilities

Data types and helpers for 16-bit PCM accumulation and finalization.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

import numpy as np

SAMPLE_RATE = 16000
CHANNELS = 1
MAX_DURATION_SECONDS = 20
FULL_SCALE = 32768.0

# Little-endian signed 16-bit, the only format sent over the wire
PCM16_DTYPE = np.dtype("<i2")


def peak_amplitude(samples: np.ndarray) -> float:
    """Maximum absolute sample value normalized to [0, 1]."""
    if len(samples) == 0:
        return 0.0
    # Widen before abs() so that -32768 does not overflow
    peak = np.max(np.abs(np.asarray(samples, dtype=np.int32)))
    return float(min(max(peak / FULL_SCALE, 0.0), 1.0))


def finalize(samples: Sequence[int] | np.ndarray, capacity: int) -> bytes:
    """Convert captured samples into a fixed-length PCM16 byte buffer.

    Shorter input is zero-padded and longer input is truncated, so the
    result is always exactly ``capacity * 2`` bytes.
    """
    if capacity < 0:
        raise ValueError(f"capacity must be non-negative, got {capacity}")

    data = np.asarray(samples, dtype=np.int16).ravel()
    out = np.zeros(capacity, dtype=PCM16_DTYPE)
    count = min(len(data), capacity)
    out[:count] = data[:count]
    return out.tobytes()


@dataclass
class AudioChunk:
    """One block of samples returned by a single device read."""

    data: np.ndarray
    sample_rate: int = SAMPLE_RATE
    sequence_number: int = 0

    @property
    def duration_ms(self) -> float:
        """Duration of this chunk in milliseconds."""
        return (len(self.data) / self.sample_rate) * 1000

    @property
    def peak(self) -> float:
        """Normalized peak amplitude of the chunk."""
        return peak_amplitude(self.data)


class SampleBuffer:
    """Fixed-capacity accumulation of int16 samples."""

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._chunks: list[np.ndarray] = []
        self._length = 0

    @classmethod
    def for_duration(
        cls, max_duration_seconds: float, sample_rate: int = SAMPLE_RATE
    ) -> "SampleBuffer":
        """Create a buffer sized for a maximum recording duration."""
        return cls(int(sample_rate * max_duration_seconds))

    def __len__(self) -> int:
        return self._length

    @property
    def remaining(self) -> int:
        """Samples that can still be accepted."""
        return self.capacity - self._length

    @property
    def is_full(self) -> bool:
        return self._length >= self.capacity

    def append(self, samples: np.ndarray) -> int:
        """Append samples, dropping whatever exceeds capacity.

        Returns the number of samples accepted.
        """
        accepted = np.asarray(samples, dtype=np.int16).ravel()[: self.remaining]
        if len(accepted):
            self._chunks.append(accepted.copy())
            self._length += len(accepted)
        return len(accepted)

    def clear(self) -> None:
        self._chunks = []
        self._length = 0

    def to_array(self) -> np.ndarray:
        """All accumulated samples as a single int16 array."""
        if not self._chunks:
            return np.array([], dtype=np.int16)
        return np.concatenate(self._chunks)

    def finalize(self) -> bytes:
        """Fixed-length PCM16 bytes of the accumulated samples."""
        return finalize(self.to_array(), self.capacity)


@dataclass
class AudioSegment:
    """A complete recording loaded from disk."""

    data: np.ndarray
    sample_rate: int
    channels: int = 1
    metadata: dict = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        """Duration in seconds."""
        return len(self.data) / self.sample_rate

    @classmethod
    def from_file(cls, filepath: str | Path) -> "AudioSegment":
        """Load audio segment from file."""
        import soundfile as sf

        data, sample_rate = sf.read(filepath, dtype="float32")

        # Convert stereo to mono if needed
        if len(data.shape) > 1:
            data = np.mean(data, axis=1)

        return cls(
            data=data,
            sample_rate=sample_rate,
            channels=1,
            metadata={"source_file": str(filepath)},
        )

    def resample(self, target_sample_rate: int) -> "AudioSegment":
        """Resample audio to target sample rate."""
        if self.sample_rate == target_sample_rate:
            return self

        from scipy import signal

        num_samples = int(len(self.data) * target_sample_rate / self.sample_rate)
        resampled = signal.resample(self.data, num_samples)

        return AudioSegment(
            data=resampled.astype(np.float32),
            sample_rate=target_sample_rate,
            channels=self.channels,
            metadata={**self.metadata, "resampled_from": self.sample_rate},
        )

    def to_pcm16(self) -> np.ndarray:
        """Float samples in [-1, 1] as int16 PCM."""
        clipped = np.clip(self.data, -1.0, 1.0)
        return (clipped * 32767).astype(np.int16)

    def chunks(self, chunk_samples: int) -> list[AudioChunk]:
        """Split the segment into device-sized PCM chunks."""
        pcm = self.to_pcm16()
        return [
            AudioChunk(
                data=pcm[i : i + chunk_samples],
                sample_rate=self.sample_rate,
                sequence_number=n,
            )
            for n, i in enumerate(range(0, len(pcm), chunk_samples))
        ]
