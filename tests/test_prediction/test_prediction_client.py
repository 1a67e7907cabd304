"""
Tests for the prediction client.

Copyright (c) 2024 Cleansheet LLC
License: CC BY 4.0
"""

import base64
import json

import pytest
import requests
from unittest.mock import MagicMock

from azscan.prediction.prediction_client import (
    DEFAULT_ENDPOINT_URL,
    PredictionClient,
    PredictionClientConfig,
)
from azscan.prediction.prediction_types import PredictionFailure, PredictionResult


class TestPredictionClientConfig:
    """Tests for prediction client configuration."""

    def test_default_config(self):
        """Test default configuration values."""
        config = PredictionClientConfig()

        assert config.endpoint_url == "https://conectapi.click/api3/prever"
        assert config.timeout_seconds is None

    def test_config_from_env(self, monkeypatch):
        """Test configuration from environment variables."""
        monkeypatch.setenv("AZSCAN_ENDPOINT_URL", "http://localhost:8000/api3/prever")
        monkeypatch.setenv("AZSCAN_TIMEOUT", "12.5")

        config = PredictionClientConfig.from_env()

        assert config.endpoint_url == "http://localhost:8000/api3/prever"
        assert config.timeout_seconds == 12.5

    def test_config_from_empty_env(self, monkeypatch):
        monkeypatch.delenv("AZSCAN_ENDPOINT_URL", raising=False)
        monkeypatch.delenv("AZSCAN_TIMEOUT", raising=False)

        config = PredictionClientConfig.from_env()

        assert config.endpoint_url == DEFAULT_ENDPOINT_URL
        assert config.timeout_seconds is None


class TestPredictionClient:
    """Tests for PredictionClient class."""

    @pytest.fixture
    def client(self) -> PredictionClient:
        """Create client with a mocked HTTP session."""
        client = PredictionClient()
        client._session = MagicMock()
        return client

    @pytest.fixture
    def audio_bytes(self) -> bytes:
        """A full 20-second buffer."""
        return bytes(range(256)) * 2500

    def test_request_format(self, client, audio_bytes, make_response):
        """Test the POST body, headers and endpoint."""
        client._session.post.return_value = make_response(200, {"Normal": 1})

        client.predict(audio_bytes)

        client._session.post.assert_called_once()
        args, kwargs = client._session.post.call_args
        assert args[0] == DEFAULT_ENDPOINT_URL
        assert kwargs["headers"]["Content-Type"] == "application/json; charset=utf-8"
        assert kwargs["timeout"] is None
        assert set(kwargs["json"]) == {"audio_base64"}
        assert base64.b64decode(kwargs["json"]["audio_base64"]) == audio_bytes

    def test_encode_request_has_no_line_breaks(self):
        body = PredictionClient.encode_request(bytes(640000))

        assert "\n" not in body["audio_base64"]
        assert len(base64.b64decode(body["audio_base64"])) == 640000
        assert json.loads(json.dumps(body)) == body

    def test_normalized_result(self, client, audio_bytes, make_response):
        client._session.post.return_value = make_response(
            200, {"Normal": 2, "Bronquite": 1, "Pneumonia": 1}
        )

        result = client.predict(audio_bytes)

        assert result == PredictionResult(0.5, 0.25, 0.25)

    def test_string_scores(self, client, audio_bytes, make_response):
        client._session.post.return_value = make_response(
            200, {"Normal": "0.7", "Bronquite": "0.3"}
        )

        result = client.predict(audio_bytes)

        assert result.percentages() == {"Normal": 70, "Bronquite": 30, "Pneumonia": 0}

    def test_empty_object(self, client, audio_bytes, make_response):
        """Test that a response with no scores normalizes to zeros."""
        client._session.post.return_value = make_response(200, {})

        result = client.predict(audio_bytes)

        assert result == PredictionResult(0.0, 0.0, 0.0)

    def test_server_error(self, client, audio_bytes, make_response):
        client._session.post.return_value = make_response(
            500, content=b'{"Normal": 1}'
        )

        result = client.predict(audio_bytes)

        assert isinstance(result, PredictionFailure)
        assert "500" in result.reason

    def test_empty_body(self, client, audio_bytes, make_response):
        client._session.post.return_value = make_response(200, content=b"")

        assert isinstance(client.predict(audio_bytes), PredictionFailure)

    def test_invalid_json(self, client, audio_bytes, make_response):
        response = make_response(200, content=b"<html>")
        response.json.side_effect = ValueError("Expecting value")
        client._session.post.return_value = response

        assert isinstance(client.predict(audio_bytes), PredictionFailure)

    def test_non_object_json(self, client, audio_bytes, make_response):
        client._session.post.return_value = make_response(200, [0.5, 0.3, 0.2])

        assert isinstance(client.predict(audio_bytes), PredictionFailure)

    @pytest.mark.parametrize(
        "error",
        [
            requests.ConnectionError("connection refused"),
            requests.Timeout("timed out"),
        ],
    )
    def test_transport_error(self, client, audio_bytes, error):
        client._session.post.side_effect = error

        result = client.predict(audio_bytes)

        assert isinstance(result, PredictionFailure)

    def test_single_attempt_on_failure(self, client, audio_bytes, make_response):
        """Test that failures are not retried."""
        client._session.post.return_value = make_response(503, content=b"busy")

        client.predict(audio_bytes)

        assert client._session.post.call_count == 1

    def test_custom_endpoint_and_timeout(self, audio_bytes, make_response):
        client = PredictionClient(
            PredictionClientConfig(endpoint_url="http://localhost:9000/p", timeout_seconds=5.0)
        )
        client._session = MagicMock()
        client._session.post.return_value = make_response(200, {"Normal": 1})

        client.predict(audio_bytes)

        args, kwargs = client._session.post.call_args
        assert args[0] == "http://localhost:9000/p"
        assert kwargs["timeout"] == 5.0

    def test_predict_async(self, client, audio_bytes, make_response):
        client._session.post.return_value = make_response(200, {"Bronquite": 3})

        future = client.predict_async(audio_bytes)

        assert future.result(timeout=5.0) == PredictionResult(0.0, 1.0, 0.0)
        client.close()

    def test_predict_async_failure_is_a_value(self, client, audio_bytes):
        client._session.post.side_effect = requests.ConnectionError("offline")

        future = client.predict_async(audio_bytes)

        assert isinstance(future.result(timeout=5.0), PredictionFailure)
        client.close()

    def test_health_check(self, client, make_response):
        client._session.options.return_value = make_response(405)

        assert client.health_check() is True

    def test_health_check_unreachable(self, client):
        client._session.options.side_effect = requests.ConnectionError("offline")

        assert client.health_check() is False

    def test_close(self, client):
        session = client._session

        with client:
            pass

        session.close.assert_called_once()
