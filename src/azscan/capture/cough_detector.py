"""
Cough Detection

Loudness-threshold detection used to decide whether a recording is worth
sending for analysis.
"""

DEFAULT_THRESHOLD = 0.1


def detect(peak: float, threshold: float = DEFAULT_THRESHOLD) -> bool:
    """Return True when a chunk's peak amplitude exceeds the threshold."""
    return peak > threshold


class CoughDetector:
    """Latches a per-session flag once any chunk crosses the threshold."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {threshold}")
        self.threshold = threshold
        self._detected = False

    @property
    def detected(self) -> bool:
        return self._detected

    def update(self, peak: float) -> bool:
        """Feed one chunk's peak and return the session flag."""
        if detect(peak, self.threshold):
            self._detected = True
        return self._detected

    def reset(self) -> None:
        """Clear the flag for a new session."""
        self._detected = False
