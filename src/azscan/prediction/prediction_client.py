"""
Prediction Client

HTTP client for the remote cough classification service.

The finalized PCM buffer is base64-encoded into a JSON body and POSTed once.
Every failure is returned as a ``PredictionFailure`` value; nothing raises.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
import base64
import logging
import os

import requests

from azscan.prediction.prediction_types import (
    PredictionFailure,
    PredictionResult,
    normalize,
)

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT_URL = "https://conectapi.click/api3/prever"


@dataclass
class PredictionClientConfig:
    """Configuration for the prediction client."""

    endpoint_url: str = DEFAULT_ENDPOINT_URL
    # None = no timeout override
    timeout_seconds: float | None = None

    @classmethod
    def from_env(cls) -> "PredictionClientConfig":
        """Create configuration from environment variables."""
        timeout = os.environ.get("AZSCAN_TIMEOUT")
        return cls(
            endpoint_url=os.environ.get("AZSCAN_ENDPOINT_URL", DEFAULT_ENDPOINT_URL),
            timeout_seconds=float(timeout) if timeout else None,
        )


class PredictionClient:
    """Sends one recording to the classification endpoint."""

    def __init__(self, config: PredictionClientConfig | None = None):
        """Initialize prediction client."""
        self.config = config or PredictionClientConfig()
        self._session = requests.Session()
        self._executor: ThreadPoolExecutor | None = None

    @property
    def _headers(self) -> dict[str, str]:
        """Request headers."""
        return {"Content-Type": "application/json; charset=utf-8"}

    @staticmethod
    def encode_request(audio_bytes: bytes) -> dict[str, str]:
        """Build the JSON request body for a PCM buffer."""
        return {"audio_base64": base64.b64encode(audio_bytes).decode("ascii")}

    def predict(self, audio_bytes: bytes) -> PredictionResult | PredictionFailure:
        """Classify a recording. Makes exactly one request."""
        logger.info("Requesting prediction for %d bytes of audio", len(audio_bytes))

        try:
            response = self._session.post(
                self.config.endpoint_url,
                headers=self._headers,
                json=self.encode_request(audio_bytes),
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning("Prediction request failed: %s", e)
            return PredictionFailure(f"request failed: {e}")

        if not response.ok:
            logger.warning("Prediction API error: %s", response.status_code)
            return PredictionFailure(f"status {response.status_code}")

        if not response.content:
            logger.warning("Prediction API returned an empty body")
            return PredictionFailure("empty body")

        try:
            data = response.json()
        except ValueError as e:
            logger.warning("Prediction API returned invalid JSON: %s", e)
            return PredictionFailure("invalid JSON")

        if not isinstance(data, dict):
            logger.warning("Prediction API returned %s, expected an object",
                           type(data).__name__)
            return PredictionFailure("unexpected response shape")

        raw = PredictionResult.from_dict(data)
        result = normalize(raw.normal, raw.bronquite, raw.pneumonia)
        logger.debug("Raw scores %s normalized to %s", raw.scores, result.scores)
        return result

    def predict_async(
        self, audio_bytes: bytes
    ) -> "Future[PredictionResult | PredictionFailure]":
        """Run ``predict`` off the caller's thread."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="PredictionClient"
            )
        return self._executor.submit(self.predict, audio_bytes)

    def health_check(self) -> bool:
        """Check if the endpoint host is reachable."""
        try:
            response = self._session.options(self.config.endpoint_url, timeout=10.0)
            return response.status_code < 500
        except requests.RequestException:
            return False

    def close(self) -> None:
        """Release the HTTP session and worker thread."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self._session.close()

    def __enter__(self) -> "PredictionClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
