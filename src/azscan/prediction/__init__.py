"""
Prediction Module

Client and result types for the remote respiratory classification service.
"""

from azscan.prediction.prediction_types import (
    LABELS,
    PredictionFailure,
    PredictionResult,
    normalize,
)
from azscan.prediction.prediction_client import PredictionClient, PredictionClientConfig

__all__ = [
    "LABELS",
    "PredictionClient",
    "PredictionClientConfig",
    "PredictionFailure",
    "PredictionResult",
    "normalize",
]
